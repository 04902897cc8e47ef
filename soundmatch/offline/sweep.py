"""Threshold sweeps over an offline scan, used to pick a detection threshold."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from soundmatch.offline.batch import OfflineBatchDetector
from soundmatch.utils.constants import ANALYSIS


@dataclass(frozen=True)
class SweepPoint:
    threshold: float
    matches: int
    expected: Optional[int] = None

    @property
    def diff(self) -> Optional[int]:
        if self.expected is None:
            return None
        return self.matches - self.expected

    @property
    def status(self) -> str:
        diff = self.diff
        if diff is None:
            return ""
        if diff == 0:
            return "exact"
        if abs(diff) <= 2:
            return "close"
        return "off"


def threshold_range(start: float, stop: float, step: float) -> List[float]:
    """Inclusive, evenly spaced thresholds from ``start`` to ``stop``."""
    if step <= 0:
        raise ValueError("step must be positive")
    count = int(np.floor((stop - start) / step + 1e-9)) + 1
    return [round(start + i * step, 6) for i in range(max(count, 0))]


def sweep_thresholds(
    long_audio: np.ndarray,
    sample_audio: np.ndarray,
    thresholds: Iterable[float],
    expected: Optional[int] = None,
    sample_rate: int = ANALYSIS.sample_rate,
    detector: Optional[OfflineBatchDetector] = None,
) -> List[SweepPoint]:
    detector = detector or OfflineBatchDetector()
    return [
        SweepPoint(float(t), len(detector.detect(long_audio, sample_audio, sample_rate, threshold=t)), expected)
        for t in thresholds
    ]


def best_threshold(points: Sequence[SweepPoint]) -> Optional[float]:
    """Middle of the thresholds hitting ``expected`` exactly, else the closest one."""
    scored = [p for p in points if p.expected is not None]
    if not scored:
        return None
    exact = [p.threshold for p in scored if p.diff == 0]
    if exact:
        return exact[len(exact) // 2]
    return min(scored, key=lambda p: abs(p.diff)).threshold


def format_sweep(points: Sequence[SweepPoint]) -> str:
    lines = [f"{'threshold':<12}{'matches':<12}{'diff':<12}status", "-" * 48]
    for point in points:
        diff = "" if point.diff is None else str(point.diff)
        lines.append(f"{point.threshold:<12.1f}{point.matches:<12d}{diff:<12}{point.status}")
    return "\n".join(lines)
