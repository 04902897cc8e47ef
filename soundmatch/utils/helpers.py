"""Utility helpers shared by multiple soundmatch subsystems."""
from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np


FloatArray = np.ndarray


def ensure_mono(signal: FloatArray) -> FloatArray:
    """Ensure waveform is mono by averaging channels if necessary."""
    if signal.ndim == 1:
        return signal
    return signal.mean(axis=1)


def as_float_frame(frame: FloatArray, length: int) -> FloatArray:
    """Return ``frame`` as float64 of exactly ``length`` samples (pad or cut)."""
    data = np.asarray(frame, dtype=np.float64).reshape(-1)
    if data.shape[0] == length:
        return data.copy()
    out = np.zeros(length, dtype=np.float64)
    n = min(length, data.shape[0])
    out[:n] = data[:n]
    return out


def rms(signal: FloatArray) -> float:
    if len(signal) == 0:
        return 0.0
    data = np.asarray(signal, dtype=np.float64)
    return float(np.sqrt(np.mean(data * data)))


def frame_count(num_samples: int, window: int, hop: int) -> int:
    """Number of full windows a hop-stepped scan produces."""
    if num_samples < window:
        return 0
    return 1 + (num_samples - window) // hop


def sliding_windows(signal: FloatArray, window: int, hop: int) -> Iterable[Tuple[int, FloatArray]]:
    """Generate ``(start, window)`` pairs of overlapping windows from signal."""
    for start in range(0, len(signal) - window + 1, hop):
        yield start, signal[start : start + window]
