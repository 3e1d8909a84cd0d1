import io
import json
import os
import tempfile
import unittest
from unittest.mock import patch

from fakes import FakeEngine, FakeTokenizer

from local_embeddings import main as cli
from local_embeddings.errors import InferenceError
from local_embeddings.model import LocalEmbeddingModel


def fake_model(engine=None):
    return LocalEmbeddingModel(
        FakeTokenizer(), engine or FakeEngine(), pooling_mode="mean", max_workers=2
    )


class TestMain(unittest.TestCase):
    @patch("local_embeddings.main.LocalEmbeddingModel.from_pretrained")
    def test_prints_embeddings_as_json(self, mock_load):
        mock_load.return_value = fake_model()
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = cli.main(["hello world", "bye", "--pooling", "cls", "--workers", "3"])
        self.assertEqual(code, 0)
        mock_load.assert_called_once_with(
            cli.DEFAULT_MODEL_NAME,
            pooling_mode="cls",
            max_sequence_length=None,
            max_workers=3,
        )
        output = json.loads(out.getvalue())
        self.assertEqual([item["text"] for item in output], ["hello world", "bye"])
        self.assertEqual(output[0]["token_count"], 4)
        self.assertEqual(len(output[0]["vector"]), 2)

    @patch("local_embeddings.main.LocalEmbeddingModel.from_pretrained")
    def test_reads_texts_from_file_and_ranks(self, mock_load):
        mock_load.return_value = fake_model()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "texts.txt")
            with open(path, "w", encoding="utf-8") as f:
                f.write("first line\n\nsecond line\n")
            with patch("sys.stdout", new_callable=io.StringIO) as out:
                code = cli.main(["--file", path, "--query", "first"])
        self.assertEqual(code, 0)
        output = json.loads(out.getvalue())
        self.assertEqual(sorted(item["text"] for item in output), ["first line", "second line"])
        scores = [item["score"] for item in output]
        self.assertEqual(scores, sorted(scores, reverse=True))
        for score in scores:
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    @patch("local_embeddings.main.LocalEmbeddingModel.from_pretrained")
    def test_failure_returns_error_code(self, mock_load):
        mock_load.return_value = fake_model(FakeEngine(fail=True))
        with self.assertLogs("local_embeddings.main", level="ERROR"):
            code = cli.main(["hello"])
        self.assertEqual(code, 1)

    def test_requires_input(self):
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                cli.main([])

    def test_run_raises_library_errors(self):
        args = cli.build_parser().parse_args(["hello"])
        with self.assertRaises(InferenceError):
            cli.run(args, fake_model(FakeEngine(fail=True)))


if __name__ == "__main__":
    unittest.main()
