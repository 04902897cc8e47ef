"""Linear-interpolation sample-rate conversion."""
from __future__ import annotations

import numpy as np

from soundmatch.utils.constants import ANALYSIS


def resample(samples: np.ndarray, from_rate: float, to_rate: float) -> np.ndarray:
    """Resample ``samples`` from ``from_rate`` to ``to_rate``.

    Each output sample interpolates between its two nearest input
    neighbours; the right neighbour is clamped to the last input sample.
    """
    data = np.asarray(samples, dtype=np.float32).reshape(-1)
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {from_rate} -> {to_rate}")
    if from_rate == to_rate or data.size == 0:
        return data.copy()
    ratio = float(from_rate) / float(to_rate)
    new_size = int(round(data.size / ratio))
    if new_size == 0:
        return np.zeros(0, dtype=np.float32)
    centers = np.arange(new_size, dtype=np.float64) * ratio
    left = np.minimum(centers.astype(np.int64), data.size - 1)
    right = np.minimum(left + 1, data.size - 1)
    frac = centers - left
    out = (1.0 - frac) * data[left] + frac * data[right]
    return out.astype(np.float32)


def to_canonical(samples: np.ndarray, sample_rate: float) -> np.ndarray:
    """Resample to the analysis rate when ``sample_rate`` differs from it."""
    return resample(samples, sample_rate, ANALYSIS.sample_rate)
