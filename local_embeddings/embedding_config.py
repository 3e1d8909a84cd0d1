"""
Configuration for in-process embeddings.

Defaults are read from environment variables once at import time so the CLI,
tests and library users all see the same values.  ``EncoderConfig`` bundles
the settings for one model instance; the pooling mode has no default there
because it depends on how the model was trained.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import PoolingMode

# Hugging Face model identifier or local directory.
DEFAULT_MODEL_NAME = os.getenv(
    "LOCAL_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
)

# Pooling used by the CLI when --pooling is not given.
DEFAULT_POOLING = os.getenv("LOCAL_EMBED_POOLING", "mean")

# Absolute input limit of the encoder, markers included.
MAX_SEQUENCE_LENGTH = int(
    os.getenv(
        "LOCAL_EMBED_MAX_SEQUENCE_LENGTH",
        "512",
    )
)

# Worker threads used for multi-text batches.
MAX_WORKERS = int(
    os.getenv(
        "LOCAL_EMBED_MAX_WORKERS",
        str(os.cpu_count() or 1),
    )
)

# "cuda", "cpu", ... ; empty means pick automatically.
DEVICE = os.getenv("LOCAL_EMBED_DEVICE") or None

# Room reserved for the sequence start and end markers.
MARKER_COUNT = 2


class EncoderConfig(BaseModel):
    """Settings for one :class:`~local_embeddings.model.LocalEmbeddingModel`."""

    model_name: str = Field(
        default=DEFAULT_MODEL_NAME,
        description="Hugging Face model identifier or path to a local copy",
    )
    pooling_mode: PoolingMode = Field(
        description="How token states are pooled: 'cls' or 'mean'",
    )
    max_sequence_length: int = Field(
        default=MAX_SEQUENCE_LENGTH,
        description="Absolute encoder input limit including the two markers",
    )
    max_workers: int = Field(
        default=MAX_WORKERS,
        description="Upper bound on worker threads for batch embedding",
    )
    device: Optional[str] = Field(
        default=DEVICE,
        description="Torch device; chosen automatically when not set",
    )

    @field_validator("pooling_mode", mode="before")
    @classmethod
    def _parse_pooling(cls, value):
        return PoolingMode.parse(value)

    @field_validator("max_sequence_length")
    @classmethod
    def _check_length(cls, value: int) -> int:
        if value <= MARKER_COUNT:
            raise ValueError(
                f"max_sequence_length must be greater than {MARKER_COUNT}"
            )
        return value

    @field_validator("max_workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_workers must be at least 1")
        return value

    @property
    def max_inner_length(self) -> int:
        return self.max_sequence_length - MARKER_COUNT

    @classmethod
    def from_env(cls, pooling_mode: Optional[str] = None) -> "EncoderConfig":
        return cls(pooling_mode=pooling_mode or DEFAULT_POOLING)
