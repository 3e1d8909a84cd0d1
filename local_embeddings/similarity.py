"""Similarity helpers for comparing embeddings."""

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two embeddings.

    Empty, differently sized or zero-length vectors score 0.0.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or va.shape != vb.shape:
        return 0.0

    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb)) / denom


def relevance_score(cosine: float) -> float:
    """Map a cosine similarity from [-1, 1] onto [0, 1]."""
    return (cosine + 1.0) / 2.0
