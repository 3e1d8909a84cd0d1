import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import torch

from local_embeddings.inference import TorchInferenceEngine
from local_embeddings.tokenizer import HuggingFaceTokenizer


class WordPiece:
    pass


class BPE:
    pass


def hf_tokenizer(**overrides):
    tok = MagicMock()
    tok.cls_token = "[CLS]"
    tok.sep_token = "[SEP]"
    tok.model_max_length = 512
    tok.backend_tokenizer = SimpleNamespace(model=WordPiece())
    tok.tokenize.return_value = ["em", "##bed", "##ding", "text"]
    tok.convert_tokens_to_ids.side_effect = lambda tokens: list(range(100, 100 + len(tokens)))
    for key, value in overrides.items():
        setattr(tok, key, value)
    return tok


class TestHuggingFaceTokenizer(unittest.TestCase):
    def test_warns_when_vocabulary_is_not_wordpiece(self):
        with self.assertLogs("local_embeddings.tokenizer", level="WARNING") as logs:
            HuggingFaceTokenizer(hf_tokenizer(backend_tokenizer=SimpleNamespace(model=BPE())))
        self.assertIn("BPE", logs.output[0])

    def test_no_warning_for_wordpiece_or_explicit_prefix(self):
        with self.assertNoLogs("local_embeddings.tokenizer", level="WARNING"):
            HuggingFaceTokenizer(hf_tokenizer())
            HuggingFaceTokenizer(
                hf_tokenizer(backend_tokenizer=SimpleNamespace(model=BPE())),
                continuation_prefix="@@",
            )

    def test_slow_wordpiece_tokenizer_is_recognised(self):
        tok = hf_tokenizer(backend_tokenizer=None, wordpiece_tokenizer=object())
        with self.assertNoLogs("local_embeddings.tokenizer", level="WARNING"):
            HuggingFaceTokenizer(tok)

    def test_tokenize_adds_markers(self):
        tokenizer = HuggingFaceTokenizer(hf_tokenizer())
        sequence = tokenizer.tokenize("embedding text")
        self.assertEqual(
            sequence.tokens, ("[CLS]", "em", "##bed", "##ding", "text", "[SEP]")
        )
        self.assertEqual(sequence.inner_count, 4)

    def test_encode_frames_tokens(self):
        tok = hf_tokenizer()
        inputs = HuggingFaceTokenizer(tok).encode(("em", "##bed"))
        tok.convert_tokens_to_ids.assert_called_once_with(["[CLS]", "em", "##bed", "[SEP]"])
        self.assertEqual(inputs["input_ids"], [[100, 101, 102, 103]])
        self.assertEqual(inputs["attention_mask"], [[1, 1, 1, 1]])
        self.assertEqual(inputs["token_type_ids"], [[0, 0, 0, 0]])

    def test_falls_back_to_bos_eos(self):
        tokenizer = HuggingFaceTokenizer(
            hf_tokenizer(cls_token=None, sep_token=None, bos_token="<s>", eos_token="</s>")
        )
        self.assertEqual(tokenizer.tokenize("x").tokens[0], "<s>")
        self.assertEqual(tokenizer.tokenize("x").tokens[-1], "</s>")

    def test_requires_markers(self):
        with self.assertRaises(ValueError):
            HuggingFaceTokenizer(
                hf_tokenizer(cls_token=None, sep_token=None, bos_token=None, eos_token=None)
            )

    def test_model_max_length(self):
        self.assertEqual(HuggingFaceTokenizer(hf_tokenizer()).model_max_length, 512)
        unknown = HuggingFaceTokenizer(hf_tokenizer(model_max_length=int(1e30)))
        self.assertIsNone(unknown.model_max_length)

    @patch("local_embeddings.tokenizer.AutoTokenizer")
    def test_from_pretrained(self, mock_auto):
        mock_auto.from_pretrained.return_value = hf_tokenizer()
        tokenizer = HuggingFaceTokenizer.from_pretrained("some/model", continuation_prefix="@@")
        mock_auto.from_pretrained.assert_called_once_with(
            "some/model", use_fast=True, trust_remote_code=False
        )
        self.assertEqual(tokenizer.continuation_prefix, "@@")


class TinyEncoder(torch.nn.Module):
    def __init__(self):
        super().__init__()
        self.embed = torch.nn.Embedding(16, 4)
        self.config = SimpleNamespace(hidden_size=4, max_position_embeddings=32)

    def forward(self, input_ids=None, attention_mask=None):
        return (self.embed(input_ids),)


class TinyTypedEncoder(TinyEncoder):
    def forward(self, input_ids=None, attention_mask=None, token_type_ids=None, output_attentions=None):
        return SimpleNamespace(last_hidden_state=self.embed(input_ids + token_type_ids))


class TestTorchInferenceEngine(unittest.TestCase):
    def test_declared_input_names_follow_forward_signature(self):
        engine = TorchInferenceEngine(TinyEncoder(), device="cpu")
        self.assertEqual(engine.declared_input_names(), {"input_ids", "attention_mask"})
        typed = TorchInferenceEngine(TinyTypedEncoder(), device="cpu")
        self.assertEqual(
            typed.declared_input_names(),
            {"input_ids", "attention_mask", "token_type_ids"},
        )

    def test_run_returns_token_states(self):
        model = TinyEncoder()
        engine = TorchInferenceEngine(model, device="cpu")
        states = engine.run(
            {
                "input_ids": [[1, 2, 3]],
                "attention_mask": [[1, 1, 1]],
                "token_type_ids": [[0, 0, 0]],
            }
        )
        self.assertIsInstance(states, np.ndarray)
        self.assertEqual(states.shape, (3, 4))
        expected = model.embed.weight[1].detach().numpy()
        np.testing.assert_allclose(states[0], expected, rtol=1e-6)

    def test_run_with_model_output_object(self):
        engine = TorchInferenceEngine(TinyTypedEncoder(), device="cpu")
        states = engine.run(
            {
                "input_ids": [[1, 2]],
                "attention_mask": [[1, 1]],
                "token_type_ids": [[0, 0]],
            }
        )
        self.assertEqual(states.shape, (2, 4))

    def test_model_is_put_in_eval_mode(self):
        engine = TorchInferenceEngine(TinyEncoder(), device="cpu")
        self.assertFalse(engine.model.training)
        self.assertEqual(engine.hidden_size, 4)
        self.assertEqual(engine.max_position_embeddings, 32)

    @patch("local_embeddings.inference.AutoModel")
    def test_from_pretrained(self, mock_auto):
        mock_auto.from_pretrained.return_value = TinyEncoder()
        engine = TorchInferenceEngine.from_pretrained("some/model", device="cpu")
        mock_auto.from_pretrained.assert_called_once_with("some/model", trust_remote_code=False)
        self.assertEqual(engine.device, "cpu")


if __name__ == "__main__":
    unittest.main()
