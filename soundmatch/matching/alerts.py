"""Alert strategies invoked when the matcher accepts a match event."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import numpy as np

from soundmatch.audio.wav import save_wav
from soundmatch.matching.state import AnalysisState
from soundmatch.utils.constants import ANALYSIS, MATCH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchEvent:
    similarity: float
    timestamp_ms: float
    frame_index: int
    frame: np.ndarray = field(repr=False)


class AlertHandler(Protocol):
    def handle(self, event: MatchEvent) -> None:
        ...


class NullAlertHandler:
    """Dry-run strategy: matches are only counted."""

    def handle(self, event: MatchEvent) -> None:
        return None


@dataclass
class CallbackAlertHandler:
    """Adapts a plain ``callback(similarity, frame)`` to the handler protocol."""

    callback: Callable[[float, np.ndarray], None]

    def handle(self, event: MatchEvent) -> None:
        self.callback(event.similarity, event.frame)


@dataclass
class LoggingAlertHandler:
    state: Optional[AnalysisState] = None
    history: List[MatchEvent] = field(default_factory=list)

    def handle(self, event: MatchEvent) -> None:
        self.history.append(event)
        message = f"Alert! Match: {event.similarity:.1f}% @ frame {event.frame_index}"
        logger.info(message)
        if self.state is not None:
            self.state.add_log(message)


class ClipAlertHandler:
    """Saves the trigger frame as ``alert_<ms>.wav``, keeping the newest ``max_files`` clips."""

    def __init__(
        self,
        directory: str | Path,
        state: Optional[AnalysisState] = None,
        max_files: int = MATCH.max_alert_clips,
        sample_rate: int = ANALYSIS.sample_rate,
    ) -> None:
        self.directory = Path(directory)
        self.state = state
        self.max_files = max_files
        self.sample_rate = sample_rate
        self.saved: List[Path] = []

    def _log(self, message: str) -> None:
        logger.info(message)
        if self.state is not None:
            self.state.add_log(message)

    def _cleanup_old_files(self) -> None:
        clips = sorted(self.directory.glob("alert_*.wav"), key=lambda p: p.stat().st_mtime)
        excess = len(clips) - self.max_files + 1
        if excess <= 0:
            return
        for path in clips[:excess]:
            path.unlink(missing_ok=True)
        self._log(f"Cleaned up {excess} old files")

    def handle(self, event: MatchEvent) -> None:
        self._log(f"Alert! Match: {event.similarity:.1f}%")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cleanup_old_files()
            path = self.directory / f"alert_{int(time.time() * 1000)}_{event.frame_index}.wav"
            save_wav(path, event.frame, self.sample_rate)
        except (OSError, RuntimeError) as exc:
            # losing one clip must not end the session
            logger.warning("Failed to save alert clip: %s", exc)
            return
        self.saved.append(path)
        self._log(f"Saved to {path.name}")
