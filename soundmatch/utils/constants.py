"""Global constants shared across soundmatch modules."""
from __future__ import annotations

import math
import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class AnalysisConstants:
    sample_rate: int = 16000
    frame_size: int = 1024
    hop_length: int = 256
    n_mels: int = 128
    n_cepstral: int = 13
    # log() clamp for silent filter-bank bands
    log_floor: float = math.exp(-50.0)
    # distance at which similarity reaches 0
    similarity_scale: float = 70.0
    cms_window: int = 200
    cms_warmup: int = 50


@dataclass(frozen=True)
class MatchConstants:
    similarity_threshold: float = 35.0
    min_alert_interval_ms: int = 1000
    progress_step: float = 0.05
    max_alert_clips: int = 20
    max_log_lines: int = 100


@dataclass(frozen=True)
class CaptureConstants:
    # RMS of ~100 on the int16 scale, about -50 dBFS
    silence_rms: float = 100.0 / 32768.0
    block_size: int = 256
    poll_timeout_s: float = 0.1


ANALYSIS = AnalysisConstants()
MATCH = MatchConstants()
CAPTURE = CaptureConstants()

# Sentinel distance for frames that cannot be compared.
MAX_DISTANCE: float = sys.float_info.max
