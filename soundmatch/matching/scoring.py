"""Per-frame distance and similarity scoring."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from soundmatch.utils.constants import ANALYSIS, MAX_DISTANCE


@dataclass(frozen=True)
class DistanceResult:
    distance: float
    similarity: float
    audio_level: float


def euclidean_distance(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
    """Euclidean distance, or ``MAX_DISTANCE`` when the vectors cannot be compared."""
    if a is None or b is None:
        return MAX_DISTANCE
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.size == 0 or a.shape != b.shape:
        return MAX_DISTANCE
    distance = float(np.linalg.norm(a - b))
    if not np.isfinite(distance):
        return MAX_DISTANCE
    return distance


def similarity_from_distance(distance: float, scale: float = ANALYSIS.similarity_scale) -> float:
    """Map a distance onto ``[0, 100]``; 0 distance is 100, ``scale`` and beyond is 0."""
    if not np.isfinite(distance) or distance >= scale:
        return 0.0
    return float(min(100.0, max(0.0, 100.0 - distance / scale * 100.0)))


def evaluate_features(
    features: np.ndarray,
    audio_level: float,
    reference: Optional[np.ndarray],
) -> DistanceResult:
    distance = euclidean_distance(features, reference)
    return DistanceResult(
        distance=distance,
        similarity=similarity_from_distance(distance),
        audio_level=max(0.0, float(audio_level)),
    )
