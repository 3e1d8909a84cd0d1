"""
Pooling of token states and aggregation of partition vectors.

``pool`` reduces the hidden states of one partition to a single vector.
``aggregate`` combines the vectors of all partitions of a text, weighting
each by its token count, and always returns an L2-normalized list.
"""

from typing import List, Sequence

import numpy as np

from .errors import InferenceError, InvalidArgumentError, InvalidConfigurationError
from .models import PoolingMode


def pool(token_vectors, mode: "PoolingMode | str") -> np.ndarray:
    """Pool a ``[tokens, hidden]`` array according to ``mode``."""
    mode = PoolingMode.parse(mode)
    states = np.asarray(token_vectors, dtype=np.float64)
    if states.ndim != 2 or states.shape[0] == 0:
        raise InferenceError(
            f"Expected a non-empty [tokens, hidden] array, got shape {states.shape}"
        )

    if mode is PoolingMode.CLS:
        return states[0]
    if mode is PoolingMode.MEAN:
        return states.mean(axis=0)
    raise InvalidConfigurationError(f"Unsupported pooling mode: {mode!r}")


def l2_normalize(vector) -> List[float]:
    """Return ``vector`` scaled to unit length; the zero vector stays zero."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


def weighted_mean(partition_vectors: Sequence, weights: Sequence[int]) -> np.ndarray:
    """Length-weighted mean of the partition vectors, not normalized."""
    if len(partition_vectors) != len(weights):
        raise ValueError(
            f"Got {len(partition_vectors)} vectors but {len(weights)} weights"
        )
    if not partition_vectors:
        raise InvalidArgumentError("Cannot aggregate zero partition vectors")

    if len(partition_vectors) == 1:
        return np.asarray(partition_vectors[0], dtype=np.float64)

    stacked = np.asarray(partition_vectors, dtype=np.float64)
    w = np.asarray(weights, dtype=np.float64)
    return (stacked * w[:, None]).sum(axis=0) / w.sum()


def aggregate(partition_vectors: Sequence, weights: Sequence[int]) -> List[float]:
    """
    Combine partition vectors into one unit-length embedding.

    Args:
        partition_vectors: One pooled vector per partition.
        weights: Token count of each partition.

    Returns:
        The weighted mean of the vectors, L2-normalized.  A single vector is
        normalized directly without averaging.
    """
    return l2_normalize(weighted_mean(partition_vectors, weights))
