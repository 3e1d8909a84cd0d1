"""
Command line entry point for embedding texts with a local model.

Texts come from positional arguments and/or a file with one text per line.
Without ``--query`` the embeddings are printed as JSON; with ``--query`` the
texts are ranked by relevance to the query instead.

    python -m local_embeddings.main "first text" "second text" --pooling mean
    python -m local_embeddings.main --file notes.txt --query "how do I deploy?"
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .embedding_config import DEFAULT_MODEL_NAME, DEFAULT_POOLING, MAX_WORKERS
from .errors import EmbeddingError
from .model import LocalEmbeddingModel
from .similarity import cosine_similarity, relevance_score

logger = logging.getLogger(__name__)


def _read_texts(args: argparse.Namespace) -> List[str]:
    texts = list(args.texts)
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            texts.extend(line.rstrip("\n") for line in f if line.strip())
    return texts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Embed texts with a local bi-encoder")
    parser.add_argument("texts", nargs="*", help="Texts to embed")
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="File with one text per line",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL_NAME,
        help="Hugging Face model name or local path",
    )
    parser.add_argument(
        "--pooling",
        type=str,
        default=DEFAULT_POOLING,
        choices=["cls", "mean"],
        help="Pooling mode the model was trained with",
    )
    parser.add_argument(
        "--max-sequence-length",
        type=int,
        default=None,
        help="Encoder input limit including markers (defaults to the tokenizer's)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=MAX_WORKERS,
        help="Worker threads for batches",
    )
    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Rank the texts by relevance to this query",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def run(args: argparse.Namespace, model: LocalEmbeddingModel) -> List[dict]:
    texts = _read_texts(args)
    batch = model.embed_all(texts)

    if args.query is None:
        return [
            {"text": text, "token_count": result.token_count, "vector": result.vector}
            for text, result in zip(texts, batch.results)
        ]

    qvec = model.embed(args.query).vector
    ranked = [
        {
            "text": text,
            "score": relevance_score(cosine_similarity(qvec, result.vector)),
        }
        for text, result in zip(texts, batch.results)
    ]
    ranked.sort(key=lambda item: item["score"], reverse=True)
    return ranked


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.texts and not args.file:
        parser.error("provide at least one text or --file")

    try:
        with LocalEmbeddingModel.from_pretrained(
            args.model,
            pooling_mode=args.pooling,
            max_sequence_length=args.max_sequence_length,
            max_workers=args.workers,
        ) as model:
            output = run(args, model)
    except EmbeddingError as e:
        logger.error(f"Embedding failed: {e}")
        return 1

    json.dump(output, sys.stdout)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
