"""Reference-sample fingerprints built from the most energetic frame."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np

from soundmatch.audio.mfcc import FeatureExtractor, default_extractor, energy
from soundmatch.audio.resample import resample
from soundmatch.audio.wav import load_wav
from soundmatch.errors import ConfigurationError, DecodeError, EmptyAudioError
from soundmatch.utils.constants import ANALYSIS
from soundmatch.utils.helpers import sliding_windows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    raw_best: np.ndarray
    cms_best: np.ndarray
    mean_mfcc: np.ndarray
    frame_count: int
    best_frame_index: int


def build_fingerprint(
    samples: np.ndarray,
    sample_rate: int = ANALYSIS.sample_rate,
    extractor: Optional[FeatureExtractor] = None,
) -> Fingerprint:
    """Build a :class:`Fingerprint` from reference ``samples``.

    The reference is resampled to the analysis rate and scanned with a
    ``frame_size`` window stepped by a quarter frame. The MFCC vector of the
    loudest frame becomes ``raw_best``; subtracting the mean vector over all
    frames gives ``cms_best``.

    Raises:
        EmptyAudioError: the reference is empty, shorter than one frame,
            silent, or contains non-finite samples.
    """
    extractor = extractor or default_extractor()
    data = np.asarray(samples, dtype=np.float32).reshape(-1)
    if data.size == 0:
        raise EmptyAudioError("reference audio is empty")
    if not np.all(np.isfinite(data)):
        raise EmptyAudioError("reference audio contains non-finite samples")
    if sample_rate != extractor.sample_rate:
        data = resample(data, sample_rate, extractor.sample_rate)

    frame_size = extractor.frame_size
    hop = frame_size // 4
    if data.size < frame_size:
        raise EmptyAudioError(
            f"reference audio has {data.size} samples, shorter than one {frame_size}-sample frame"
        )

    vectors = []
    best_index = -1
    best_energy = 0.0
    for index, (_, frame) in enumerate(sliding_windows(data, frame_size, hop)):
        vectors.append(extractor.extract_mfcc(frame))
        level = energy(frame)
        if level > best_energy:
            best_energy = level
            best_index = index

    if best_index < 0:
        raise EmptyAudioError("reference audio is silent")

    mean_mfcc = np.mean(np.vstack(vectors), axis=0)
    raw_best = vectors[best_index]
    cms_best = raw_best - mean_mfcc
    for vector in (mean_mfcc, cms_best):
        vector.setflags(write=False)
    return Fingerprint(
        raw_best=raw_best,
        cms_best=cms_best,
        mean_mfcc=mean_mfcc,
        frame_count=len(vectors),
        best_frame_index=best_index,
    )


def load_fingerprint(path: str | Path | None, extractor: Optional[FeatureExtractor] = None) -> Optional[Fingerprint]:
    """Load a reference WAV and build its fingerprint.

    Any failure (missing path, undecodable file, empty or silent audio) is
    logged and reported as ``None``, meaning "no reference configured".
    """
    if not path:
        logger.warning("No sample audio configured")
        return None
    try:
        samples, sr = load_wav(path)
        fingerprint = build_fingerprint(samples, sr, extractor)
    except (DecodeError, ConfigurationError, OSError) as exc:
        logger.warning("Could not build fingerprint from %s: %s", path, exc)
        return None
    logger.info(
        "Sample fingerprint loaded: %s (%d frames, best #%d)",
        Path(path).name,
        fingerprint.frame_count,
        fingerprint.best_frame_index,
    )
    return fingerprint


class FingerprintBuilder:
    """Caches fingerprints per reference file, rebuilding when the file changes."""

    def __init__(self, extractor: Optional[FeatureExtractor] = None) -> None:
        self.extractor = extractor or default_extractor()
        self._cache: Dict[Path, Tuple[float, Fingerprint]] = {}

    def build(self, samples: np.ndarray, sample_rate: int = ANALYSIS.sample_rate) -> Fingerprint:
        return build_fingerprint(samples, sample_rate, self.extractor)

    def load(self, path: str | Path | None) -> Optional[Fingerprint]:
        if not path:
            return load_fingerprint(path, self.extractor)
        path = Path(path)
        try:
            mtime = path.stat().st_mtime
        except OSError:
            logger.warning("Sample file not found: %s", path)
            self._cache.pop(path, None)
            return None
        cached = self._cache.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        fingerprint = load_fingerprint(path, self.extractor)
        if fingerprint is None:
            self._cache.pop(path, None)
        else:
            self._cache[path] = (mtime, fingerprint)
        return fingerprint
