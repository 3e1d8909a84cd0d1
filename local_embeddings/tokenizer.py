"""
Tokenizer interface and its Hugging Face ``transformers`` implementation.

The pipeline needs two things from a tokenizer: the sub-word tokens of a
whole text (framed by the start and end markers) and the model inputs for an
arbitrary run of those tokens.  Partitions are re-encoded from their tokens
directly, so no text is reconstructed from tokens along the way.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence

from transformers import AutoTokenizer

from .models import TokenSequence
from .partitioner import DEFAULT_CONTINUATION_PREFIX

logger = logging.getLogger(__name__)

ModelInputs = Dict[str, List[List[int]]]


class Tokenizer(Protocol):
    continuation_prefix: str

    def tokenize(self, text: str) -> TokenSequence:
        ...

    def encode(self, tokens: Sequence[str]) -> ModelInputs:
        ...


class HuggingFaceTokenizer:
    """Adapter over a ``transformers`` tokenizer (WordPiece by default).

    Parameters
    ----------
    tokenizer : transformers.PreTrainedTokenizerBase
        A loaded tokenizer.  Use :meth:`from_pretrained` to load one by name.
    continuation_prefix : str, default "##"
        Prefix the vocabulary uses for non-initial pieces of a word.
    """

    def __init__(
        self,
        tokenizer,
        continuation_prefix: str = DEFAULT_CONTINUATION_PREFIX,
    ) -> None:
        self._tokenizer = tokenizer
        self.continuation_prefix = continuation_prefix
        self.start_token = tokenizer.cls_token or tokenizer.bos_token
        self.end_token = tokenizer.sep_token or tokenizer.eos_token
        if self.start_token is None or self.end_token is None:
            raise ValueError(
                "Tokenizer defines neither cls/sep nor bos/eos marker tokens"
            )
        model_type = _subword_model_type(tokenizer)
        if (
            model_type not in (None, "WordPiece")
            and continuation_prefix == DEFAULT_CONTINUATION_PREFIX
        ):
            logger.warning(
                f"{model_type} tokenizer does not mark continuation tokens with "
                f"{continuation_prefix!r}; partitions may split words"
            )

    @classmethod
    def from_pretrained(
        cls,
        model_name: str,
        continuation_prefix: str = DEFAULT_CONTINUATION_PREFIX,
        trust_remote_code: bool = False,
    ) -> "HuggingFaceTokenizer":
        tokenizer = AutoTokenizer.from_pretrained(
            model_name, use_fast=True, trust_remote_code=trust_remote_code
        )
        return cls(tokenizer, continuation_prefix=continuation_prefix)

    def tokenize(self, text: str) -> TokenSequence:
        inner = self._tokenizer.tokenize(text)
        return TokenSequence((self.start_token, *inner, self.end_token))

    def encode(self, tokens: Sequence[str]) -> ModelInputs:
        """Frame ``tokens`` with the markers and convert them to model inputs."""
        framed = [self.start_token, *tokens, self.end_token]
        ids = self._tokenizer.convert_tokens_to_ids(framed)
        return {
            "input_ids": [ids],
            "attention_mask": [[1] * len(ids)],
            "token_type_ids": [[0] * len(ids)],
        }

    @property
    def model_max_length(self) -> Optional[int]:
        value = getattr(self._tokenizer, "model_max_length", None)
        # transformers reports a huge sentinel when the limit is unknown.
        if value is None or value > 1_000_000:
            return None
        return int(value)


def _subword_model_type(tokenizer) -> Optional[str]:
    """Name of the sub-word algorithm (``"WordPiece"``, ``"BPE"``, ...), if known."""
    backend = getattr(tokenizer, "backend_tokenizer", None)
    if backend is not None:
        return type(backend.model).__name__
    if hasattr(tokenizer, "wordpiece_tokenizer"):
        return "WordPiece"
    return None
