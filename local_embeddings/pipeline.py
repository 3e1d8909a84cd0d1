"""
Embedding of a single text of any length.

The text is tokenized once, split into word-safe partitions that fit the
encoder, each partition is encoded to one vector, and the partition vectors
are merged into a single unit-length embedding weighted by partition length.

``EmbeddingPipeline`` only depends on the :class:`PartitionEncoder`
capability, so any bi-encoder that can turn a run of tokens into a vector
can be plugged in.  ``TransformerPartitionEncoder`` is the implementation
backed by a tokenizer and an inference engine.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

import numpy as np

from .errors import EmbeddingError, InferenceError, InvalidConfigurationError
from .inference import InferenceEngine
from .models import EmbeddingResult, PoolingMode
from .partitioner import partition
from .pooling import aggregate, pool
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)

TYPE_IDS_INPUT = "token_type_ids"


class PartitionEncoder(Protocol):
    def encode_partition(self, tokens: Sequence[str]) -> np.ndarray:
        ...


class TransformerPartitionEncoder:
    """Encodes a run of tokens with a tokenizer, an engine and a pooling mode."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        engine: InferenceEngine,
        pooling_mode: PoolingMode,
        max_inner_length: Optional[int] = None,
    ) -> None:
        self.tokenizer = tokenizer
        self.engine = engine
        self.pooling_mode = PoolingMode.parse(pooling_mode)
        self.max_inner_length = max_inner_length
        self._with_type_ids = TYPE_IDS_INPUT in engine.declared_input_names()

    def encode_partition(self, tokens: Sequence[str]) -> np.ndarray:
        if self.max_inner_length is not None and len(tokens) > self.max_inner_length:
            logger.warning(
                f"Truncating partition of {len(tokens)} tokens to "
                f"{self.max_inner_length}"
            )
            tokens = tokens[: self.max_inner_length]

        inputs = dict(self.tokenizer.encode(tokens))
        if not self._with_type_ids:
            inputs.pop(TYPE_IDS_INPUT, None)
        states = self.engine.run(inputs)
        return pool(states, self.pooling_mode)


class EmbeddingPipeline:
    """
    Embeds one text at a time.

    Parameters
    ----------
    tokenizer : Tokenizer
        Produces the token sequence of a text, markers included.
    encoder : PartitionEncoder
        Turns the tokens of one partition into a vector.
    max_inner_length : int
        Largest number of tokens per partition, markers excluded.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        encoder: PartitionEncoder,
        max_inner_length: int,
    ) -> None:
        if max_inner_length < 1:
            raise InvalidConfigurationError(
                f"max_inner_length must be at least 1, got {max_inner_length}"
            )
        self.tokenizer = tokenizer
        self.encoder = encoder
        self.max_inner_length = max_inner_length

    def count_tokens(self, text: str) -> int:
        try:
            return self.tokenizer.tokenize(text).inner_count
        except EmbeddingError:
            raise
        except Exception as exc:
            raise InferenceError(f"Tokenization failed: {exc}") from exc

    def embed(self, text: str) -> EmbeddingResult:
        """
        Embed ``text`` into a unit-length vector.

        Returns:
            The embedding and the number of tokens of ``text``, markers
            excluded.

        Raises:
            InferenceError: If the tokenizer or the engine fails.
        """
        try:
            sequence = self.tokenizer.tokenize(text)
            partitions = partition(
                sequence,
                self.max_inner_length,
                getattr(self.tokenizer, "continuation_prefix", "##"),
            )
            if partitions:
                vectors: List[np.ndarray] = [
                    self.encoder.encode_partition(part.slice(sequence))
                    for part in partitions
                ]
                weights = [part.weight for part in partitions]
            else:
                # Empty text still gets an embedding of the bare markers.
                vectors = [self.encoder.encode_partition(())]
                weights = [1]
        except EmbeddingError:
            raise
        except Exception as exc:
            raise InferenceError(
                f"Embedding failed for text {_preview(text)!r}: {exc}"
            ) from exc

        logger.debug(
            f"Embedded {sequence.inner_count} tokens in {len(partitions)} partition(s)"
        )
        return EmbeddingResult(
            vector=aggregate(vectors, weights),
            token_count=sequence.inner_count,
        )


def _preview(text: str, limit: int = 40) -> str:
    return text if len(text) <= limit else text[:limit] + "..."
