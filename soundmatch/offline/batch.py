"""Offline scan of a long recording for occurrences of a reference sample."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from soundmatch.audio.mfcc import FeatureExtractor, default_extractor
from soundmatch.audio.resample import resample
from soundmatch.audio.wav import load_wav
from soundmatch.errors import EmptyAudioError
from soundmatch.matching.fingerprint import build_fingerprint
from soundmatch.matching.scoring import euclidean_distance
from soundmatch.utils.constants import ANALYSIS, MATCH
from soundmatch.utils.helpers import frame_count, sliding_windows

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class MatchResult:
    frame_index: int
    distance: float
    time_seconds: float


def merge_adjacent_matches(matches: Sequence[MatchResult], max_gap: int = 5) -> List[MatchResult]:
    """Collapse runs of candidates at most ``max_gap`` frames apart into their closest member."""
    if not matches:
        return []
    merged: List[MatchResult] = []
    group = [matches[0]]
    for prev, curr in zip(matches, matches[1:]):
        if curr.frame_index - prev.frame_index <= max_gap:
            group.append(curr)
            continue
        merged.append(min(group, key=lambda m: m.distance))
        group = [curr]
    merged.append(min(group, key=lambda m: m.distance))
    return merged


def detect_matches(
    long_audio: np.ndarray,
    sample_audio: np.ndarray,
    sample_rate: int = ANALYSIS.sample_rate,
    frame_size: int = ANALYSIS.frame_size,
    hop_length: int = ANALYSIS.hop_length,
    threshold: float = MATCH.similarity_threshold,
    on_progress: Optional[ProgressCallback] = None,
    extractor: Optional[FeatureExtractor] = None,
) -> List[MatchResult]:
    """Find every occurrence of ``sample_audio`` inside ``long_audio``.

    Both buffers share ``sample_rate`` and are resampled to the analysis rate
    when it differs. The reference is reduced to the raw MFCC vector of its
    loudest frame (no mean subtraction: both recordings are assumed to come
    from the same device). Every ``hop_length``-stepped frame of the long
    recording closer than ``threshold`` becomes a candidate, and candidates
    belonging to one physical occurrence are merged into the closest one.

    Returns the merged matches in ascending time order. An unusable
    reference (empty, too short, silent) yields an empty list.
    """
    target_sr = ANALYSIS.sample_rate
    if extractor is None or extractor.frame_size != frame_size:
        extractor = default_extractor(target_sr, frame_size)
    long_data = np.asarray(long_audio, dtype=np.float32).reshape(-1)
    sample_data = np.asarray(sample_audio, dtype=np.float32).reshape(-1)
    if sample_rate != target_sr:
        long_data = resample(long_data, sample_rate, target_sr)
        sample_data = resample(sample_data, sample_rate, target_sr)

    try:
        fingerprint = build_fingerprint(sample_data, target_sr, extractor)
    except EmptyAudioError as exc:
        logger.warning("No usable reference sample: %s", exc)
        return []
    reference = fingerprint.raw_best

    total = len(long_data)
    candidates: List[MatchResult] = []
    last_progress = 0.0
    for frame_index, (start, frame) in enumerate(sliding_windows(long_data, frame_size, hop_length)):
        if on_progress is not None:
            progress = start / total
            if progress - last_progress >= MATCH.progress_step:
                on_progress(progress)
                last_progress = progress
        distance = euclidean_distance(extractor.extract_mfcc(frame), reference)
        if distance < threshold:
            candidates.append(MatchResult(frame_index, distance, start / target_sr))
    if on_progress is not None:
        on_progress(1.0)

    max_gap = len(sample_data) // hop_length + 2
    merged = merge_adjacent_matches(candidates, max_gap=max_gap)
    logger.info(
        "Scanned %d frames: %d candidates, %d matches (threshold %.1f)",
        frame_count(total, frame_size, hop_length),
        len(candidates),
        len(merged),
        threshold,
    )
    return merged


def format_matches(matches: Sequence[MatchResult], expected: Optional[int] = None) -> str:
    """Human-readable report of ``matches``, compared to ``expected`` when given."""
    rule = "=" * 60
    lines = [rule, "MFCC match results", rule, f"Total matches: {len(matches)}"]
    if expected is not None:
        accuracy = f"{len(matches) / expected * 100:.1f}%" if expected > 0 else "N/A"
        lines += [f"Expected: {expected}", f"Accuracy: {accuracy}"]
    lines.append("-" * 60)
    for number, match in enumerate(matches, start=1):
        lines.append(
            f"#{number} @ Frame {match.frame_index} ({match.time_seconds:.2f}s) - distance: {match.distance:.2f}"
        )
    lines.append(rule)
    if expected is not None:
        diff = len(matches) - expected
        if diff == 0:
            status = "exact"
        elif abs(diff) <= 2:
            status = "close (within 2)"
        else:
            status = "off, adjust the threshold"
        lines.append(f"Status: {status}")
    return "\n".join(lines)


class OfflineBatchDetector:
    """Bundles scan parameters for repeated offline runs."""

    def __init__(
        self,
        threshold: float = MATCH.similarity_threshold,
        frame_size: int = ANALYSIS.frame_size,
        hop_length: int = ANALYSIS.hop_length,
        extractor: Optional[FeatureExtractor] = None,
    ) -> None:
        self.threshold = threshold
        self.frame_size = frame_size
        self.hop_length = hop_length
        self.extractor = extractor or default_extractor(ANALYSIS.sample_rate, frame_size)

    def detect(
        self,
        long_audio: np.ndarray,
        sample_audio: np.ndarray,
        sample_rate: int = ANALYSIS.sample_rate,
        threshold: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[MatchResult]:
        return detect_matches(
            long_audio,
            sample_audio,
            sample_rate=sample_rate,
            frame_size=self.frame_size,
            hop_length=self.hop_length,
            threshold=self.threshold if threshold is None else threshold,
            on_progress=on_progress,
            extractor=self.extractor,
        )

    def detect_files(
        self,
        long_path: str | Path,
        sample_path: str | Path,
        threshold: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[MatchResult]:
        """Scan two WAV files; each is brought to the analysis rate from its own header rate.

        Raises:
            DecodeError: either file cannot be read.
        """
        long_audio, long_sr = load_wav(long_path)
        sample_audio, sample_sr = load_wav(sample_path)
        if long_sr != ANALYSIS.sample_rate:
            long_audio = resample(long_audio, long_sr, ANALYSIS.sample_rate)
        if sample_sr != ANALYSIS.sample_rate:
            sample_audio = resample(sample_audio, sample_sr, ANALYSIS.sample_rate)
        return self.detect(long_audio, sample_audio, ANALYSIS.sample_rate, threshold, on_progress)
