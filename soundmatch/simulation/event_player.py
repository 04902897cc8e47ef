"""Synthesized test streams with a reference sample placed at known times."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from soundmatch.audio.sources import ArrayAudioSource, hop_frames
from soundmatch.utils.constants import ANALYSIS


@dataclass
class SamplePlacement:
    start_s: float
    gain: float = 1.0


@dataclass
class Scenario:
    name: str
    length_s: float
    noise_level: float
    placements: List[SamplePlacement] = field(default_factory=list)
    seed: Optional[int] = 0


def evenly_spaced(count: int, first_s: float, spacing_s: float, gain: float = 1.0) -> List[SamplePlacement]:
    return [SamplePlacement(first_s + i * spacing_s, gain) for i in range(count)]


class EventPlayer:
    """Mixes ``sample`` into Gaussian noise at every placement of ``scenario``."""

    def __init__(self, scenario: Scenario, sample: np.ndarray, sample_rate: int = ANALYSIS.sample_rate) -> None:
        self.scenario = scenario
        self.sample = np.asarray(sample, dtype=np.float32).reshape(-1)
        self.sample_rate = sample_rate
        self.timeline = self._synthesize()

    def _synthesize(self) -> np.ndarray:
        num_samples = int(self.scenario.length_s * self.sample_rate)
        rng = np.random.default_rng(self.scenario.seed)
        timeline = rng.normal(scale=self.scenario.noise_level, size=num_samples).astype(np.float32)
        for placement in self.scenario.placements:
            start = int(round(placement.start_s * self.sample_rate))
            if start >= num_samples:
                continue
            end = min(start + len(self.sample), num_samples)
            timeline[start:end] += placement.gain * self.sample[: end - start]
        np.clip(timeline, -1.0, 1.0, out=timeline)
        return timeline

    @property
    def duration_s(self) -> float:
        return len(self.timeline) / self.sample_rate

    def stream(self, frame_size: int = ANALYSIS.frame_size, realtime: bool = False) -> Iterator[np.ndarray]:
        return hop_frames(self.timeline, frame_size, ANALYSIS.hop_length, realtime, self.sample_rate)

    def source(self, realtime: bool = False) -> ArrayAudioSource:
        return ArrayAudioSource(self.timeline, self.sample_rate, realtime=realtime)

    def event_schedule(self) -> List[float]:
        """Sorted start times (seconds) of placements that fit in the timeline."""
        return sorted(p.start_s for p in self.scenario.placements if p.start_s < self.duration_s)
