"""Cosine similarity used to rank fallback query results."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

# Lower than any valid cosine similarity.
SENTINEL_SCORE = -1.0


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Return the cosine similarity of *a* and *b*.

    Absent inputs, mismatched lengths and zero-norm vectors score
    ``SENTINEL_SCORE`` instead of raising, so the value is always safe to rank.
    """

    if a is None or b is None or len(a) != len(b) or len(a) == 0:
        return SENTINEL_SCORE
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0 or not math.isfinite(denom):
        return SENTINEL_SCORE
    score = float(np.dot(va, vb) / denom)
    if math.isnan(score):
        return SENTINEL_SCORE
    # Rounding can push parallel vectors just past 1.0.
    return max(-1.0, min(1.0, score))


__all__ = ["SENTINEL_SCORE", "cosine_similarity"]
