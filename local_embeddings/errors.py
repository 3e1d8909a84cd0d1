"""
Exception types raised by the local embedding pipeline.

Configuration and argument errors also derive from ``ValueError`` and
inference failures from ``RuntimeError`` so callers that only know the
builtin types can still catch them.
"""


class EmbeddingError(Exception):
    """Base class for every error raised by this package."""


class InvalidConfigurationError(EmbeddingError, ValueError):
    """The model was constructed with settings it cannot work with."""


class InvalidArgumentError(EmbeddingError, ValueError):
    """A call received input it cannot process (e.g. an empty batch)."""


class InferenceError(EmbeddingError, RuntimeError):
    """The tokenizer or the inference engine failed for a given text."""


class EmbeddingCancelledError(EmbeddingError):
    """Waiting on batch workers was cancelled before all texts were embedded."""
