"""WAV boundary: load and save mono 16-bit PCM files via soundfile."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import numpy as np
import soundfile as sf

from soundmatch.errors import DecodeError
from soundmatch.utils.helpers import ensure_mono

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WavInfo:
    sample_rate: int
    channels: int
    subtype: str
    frames: int

    @property
    def duration_ms(self) -> int:
        if self.sample_rate <= 0:
            return 0
        return int(self.frames * 1000 / self.sample_rate)


def wav_info(path: str | Path) -> WavInfo:
    """Read the header of ``path`` without decoding samples."""
    try:
        info = sf.info(str(path))
    except (sf.LibsndfileError, RuntimeError) as exc:
        raise DecodeError(f"could not read WAV header of {path}: {exc}") from exc
    return WavInfo(
        sample_rate=int(info.samplerate),
        channels=int(info.channels),
        subtype=str(info.subtype),
        frames=int(info.frames),
    )


def load_wav(path: str | Path) -> Tuple[np.ndarray, int]:
    """Decode ``path`` into mono float32 samples in ``[-1, 1]`` and its rate.

    Extra chunks before ``data`` and odd-sized chunk padding are handled by
    libsndfile. Truncated or malformed files raise :class:`DecodeError`.
    """
    path = Path(path)
    if not path.exists():
        raise DecodeError(f"could not load file: {path} does not exist")
    try:
        data, sr = sf.read(str(path), dtype="float32", always_2d=False)
    except (sf.LibsndfileError, RuntimeError) as exc:
        raise DecodeError(f"could not load file {path}: {exc}") from exc
    data = ensure_mono(np.asarray(data, dtype=np.float32)).astype(np.float32)
    logger.debug("Loaded %s: %d Hz, %d samples", path.name, sr, len(data))
    return data, int(sr)


def save_wav(path: str | Path, samples: np.ndarray, sample_rate: int) -> Path:
    """Write ``samples`` (floats in ``[-1, 1]``) as a mono 16-bit PCM WAV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = np.clip(np.asarray(samples, dtype=np.float32).reshape(-1), -1.0, 1.0)
    sf.write(str(path), data, int(sample_rate), subtype="PCM_16", format="WAV")
    return path
