"""Scores detections against a known placement schedule."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

import numpy as np

from soundmatch.matching.alerts import MatchEvent
from soundmatch.offline.batch import MatchResult


@dataclass
class DetectionReport:
    hits: int
    misses: int
    false_positives: int
    duration_s: float
    latencies: List[float] = field(default_factory=list)

    @property
    def recall(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    @property
    def false_positives_per_minute(self) -> float:
        minutes = self.duration_s / 60.0
        return self.false_positives / minutes if minutes else 0.0

    @property
    def mean_latency(self) -> float:
        return float(np.mean(self.latencies)) if self.latencies else 0.0

    def summary(self) -> str:
        return (
            f"hits={self.hits} misses={self.misses} false_positives={self.false_positives} "
            f"recall={self.recall:.2f} fp/min={self.false_positives_per_minute:.2f} "
            f"mean_latency={self.mean_latency:.3f}s"
        )


def score_detections(
    detections_s: Iterable[float],
    schedule_s: Sequence[float],
    duration_s: float,
    tolerance_s: float = 1.0,
) -> DetectionReport:
    """Pair each detection with the earliest unclaimed placement within ``tolerance_s``.

    A detection with no such placement is a false positive; a placement never
    claimed is a miss.
    """
    schedule = sorted(schedule_s)
    claimed = [False] * len(schedule)
    latencies: List[float] = []
    false_positives = 0
    for t in sorted(detections_s):
        for idx, start in enumerate(schedule):
            if not claimed[idx] and abs(t - start) <= tolerance_s:
                claimed[idx] = True
                latencies.append(max(0.0, t - start))
                break
        else:
            false_positives += 1
    hits = sum(claimed)
    return DetectionReport(
        hits=hits,
        misses=len(schedule) - hits,
        false_positives=false_positives,
        duration_s=duration_s,
        latencies=latencies,
    )


def match_times(matches: Iterable[MatchResult]) -> List[float]:
    return [m.time_seconds for m in matches]


def event_times(events: Iterable[MatchEvent]) -> List[float]:
    """Event times in seconds; only meaningful for simulated (stream-relative) clocks."""
    return [e.timestamp_ms / 1000.0 for e in events]
