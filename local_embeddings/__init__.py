"""
In-process text embeddings with a local bi-encoder.

Texts of any length are tokenized, split into word-safe partitions that fit
the encoder's input limit, encoded partition by partition, pooled, merged
by length-weighted averaging and L2-normalized.  Batches of texts are
embedded concurrently on a reusable thread pool.

The key exported symbols are:

* ``LocalEmbeddingModel`` – tokenizer + engine + pooling behind ``embed`` /
  ``embed_all``.
* ``EncoderConfig`` – validated settings, readable from the environment.
* ``EmbeddingPipeline`` / ``TransformerPartitionEncoder`` – single-text
  pipeline and its default partition encoder.
* ``BatchScheduler`` – concurrent fan-out over many texts.
* ``partition`` – word-safe splitting of a token sequence.
* ``pool`` / ``aggregate`` / ``l2_normalize`` – vector reduction helpers.
* ``EmbeddingModelListener`` – hook into embedding calls.
"""

from .embedding_config import (
    DEFAULT_MODEL_NAME,
    DEFAULT_POOLING,
    MAX_SEQUENCE_LENGTH,
    MAX_WORKERS,
    EncoderConfig,
)
from .errors import (
    EmbeddingCancelledError,
    EmbeddingError,
    InferenceError,
    InvalidArgumentError,
    InvalidConfigurationError,
)
from .listeners import EmbeddingModelListener
from .model import LocalEmbeddingModel
from .models import BatchResult, EmbeddingResult, Partition, PoolingMode, TokenSequence
from .partitioner import partition
from .pipeline import EmbeddingPipeline, PartitionEncoder, TransformerPartitionEncoder
from .pooling import aggregate, l2_normalize, pool
from .scheduler import BatchScheduler
from .similarity import cosine_similarity, relevance_score

__all__ = [
    # Configuration
    "DEFAULT_MODEL_NAME",
    "DEFAULT_POOLING",
    "MAX_SEQUENCE_LENGTH",
    "MAX_WORKERS",
    "EncoderConfig",
    # Errors
    "EmbeddingError",
    "InvalidConfigurationError",
    "InvalidArgumentError",
    "InferenceError",
    "EmbeddingCancelledError",
    # Data model
    "PoolingMode",
    "TokenSequence",
    "Partition",
    "EmbeddingResult",
    "BatchResult",
    # Pipeline
    "LocalEmbeddingModel",
    "EmbeddingPipeline",
    "PartitionEncoder",
    "TransformerPartitionEncoder",
    "BatchScheduler",
    "EmbeddingModelListener",
    # Functions
    "partition",
    "pool",
    "aggregate",
    "l2_normalize",
    "cosine_similarity",
    "relevance_score",
]
