"""Frame-by-frame matching of an audio stream against a reference fingerprint."""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

import numpy as np

from soundmatch.audio.mfcc import FeatureExtractor, default_extractor, energy
from soundmatch.audio.sources import AudioSource
from soundmatch.matching.alerts import AlertHandler, MatchEvent, NullAlertHandler
from soundmatch.matching.cms import SlidingCmsWindow
from soundmatch.matching.event_counter import MatchEventCounter
from soundmatch.matching.fingerprint import Fingerprint
from soundmatch.matching.scoring import evaluate_features
from soundmatch.matching.state import AnalysisState
from soundmatch.utils.constants import ANALYSIS, MATCH, MAX_DISTANCE

logger = logging.getLogger(__name__)


def format_distance(distance: float) -> str:
    return "n/a" if distance == MAX_DISTANCE else f"{distance:.1f}"


class MatcherState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class MatchSettings:
    """Live-tunable thresholds; the matcher reads them on every frame."""

    similarity_threshold: float = MATCH.similarity_threshold
    min_alert_interval_ms: float = MATCH.min_alert_interval_ms
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def threshold(self) -> float:
        with self._lock:
            return float(self.similarity_threshold)

    def interval_ms(self) -> float:
        with self._lock:
            return float(self.min_alert_interval_ms)

    def update(self, similarity_threshold: Optional[float] = None, min_alert_interval_ms: Optional[float] = None) -> None:
        with self._lock:
            if similarity_threshold is not None:
                self.similarity_threshold = float(similarity_threshold)
            if min_alert_interval_ms is not None:
                self.min_alert_interval_ms = float(min_alert_interval_ms)


class StreamingMatcher:
    """Consumes frames from an :class:`AudioSource` and raises debounced match events.

    Every frame is scored twice: against the raw fingerprint (kept for
    diagnostics) and, once the sliding CMS window holds ``cms_warmup``
    vectors, as a mean-subtracted vector against ``fingerprint.cms_best``.
    The effective distance drives the similarity published to ``state`` and
    the debounce counter.

    A matcher runs one session. :meth:`cancel` may be called from any thread;
    the frame being processed is dropped and the source is closed.
    """

    def __init__(
        self,
        state: AnalysisState,
        settings: Optional[MatchSettings] = None,
        alert_handler: Optional[AlertHandler] = None,
        extractor: Optional[FeatureExtractor] = None,
        cms_window: int = ANALYSIS.cms_window,
        cms_warmup: int = ANALYSIS.cms_warmup,
        hop_length: int = ANALYSIS.hop_length,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.settings = settings or MatchSettings()
        self.alert_handler: AlertHandler = alert_handler or NullAlertHandler()
        self.extractor = extractor or default_extractor()
        self.cms = SlidingCmsWindow(cms_window, cms_warmup)
        self.counter = MatchEventCounter()
        self.hop_length = hop_length
        self.clock = clock
        self.status = MatcherState.IDLE
        self.frames_processed = 0
        self.matches = 0
        self._cancel = threading.Event()
        self._source: Optional[AudioSource] = None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()
        source = self._source
        stop = getattr(source, "stop", None)
        if callable(stop):
            stop()

    def _now_ms(self, frame_index: int, is_simulation: bool) -> float:
        if is_simulation:
            return frame_index * self.hop_length * 1000.0 / self.extractor.sample_rate
        return self.clock() * 1000.0

    def _log_frame(self, frame_index: int, raw_distance: float, result, warmed_up: bool) -> None:
        interval = 1 if frame_index < 10 else 50
        if frame_index % interval != 0:
            return
        msg = f"Frame #{frame_index}: Raw={format_distance(raw_distance)}"
        if warmed_up:
            msg += f", CMS={format_distance(result.distance)}"
        msg += f", Sim={result.similarity:.1f}%, Lv={result.audio_level:.3f}"
        logger.debug(msg)
        self.state.add_log(msg)

    def process_frame(
        self,
        frame: np.ndarray,
        frame_index: int,
        fingerprint: Optional[Fingerprint],
        is_simulation: bool = False,
        total_samples: Optional[int] = None,
    ) -> bool:
        """Score one frame, publish it and return ``True`` when it triggers an event."""
        raw_mfcc = self.extractor.extract_mfcc(frame)
        audio_level = energy(frame)

        raw_result = evaluate_features(raw_mfcc, audio_level, fingerprint.raw_best if fingerprint else None)

        self.cms.push(raw_mfcc)
        normalized = self.cms.normalize(raw_mfcc)
        if normalized is not None:
            result = evaluate_features(normalized, audio_level, fingerprint.cms_best if fingerprint else None)
        else:
            result = raw_result

        if self._cancel.is_set():
            return False

        self.state.update_similarity(result.similarity, result.distance, result.audio_level)

        if is_simulation and total_samples:
            progress = min(1.0, (frame_index + 1) * self.hop_length / total_samples)
            self.state.update_simulation_progress(progress)

        self._log_frame(frame_index, raw_result.distance, result, normalized is not None)

        now_ms = self._now_ms(frame_index, is_simulation)
        triggered = self.counter.should_trigger(
            result.distance < self.settings.threshold(),
            now_ms,
            self.settings.interval_ms(),
        )
        if triggered:
            self.matches += 1
            self.state.increment_match_count()
            self.alert_handler.handle(
                MatchEvent(
                    similarity=result.similarity,
                    timestamp_ms=now_ms,
                    frame_index=frame_index,
                    frame=np.array(frame, dtype=np.float32, copy=True),
                )
            )
        return triggered

    def run(self, source: AudioSource, fingerprint: Optional[Fingerprint], is_simulation: bool = False) -> int:
        """Consume ``source`` until it ends or :meth:`cancel` is called.

        Returns the number of accepted match events.
        """
        if self.status is not MatcherState.IDLE:
            raise RuntimeError(f"matcher already {self.status.value}; create a new one per session")
        self.state.acquire(self)
        self.status = MatcherState.RUNNING
        self._source = source
        self.cms.clear()
        self.counter.reset()
        if fingerprint is None:
            logger.warning("No reference fingerprint; every frame reports maximal distance")
        frames: Optional[Iterator[np.ndarray]] = None
        try:
            frames = iter(source.chunks(self.extractor.frame_size))
            # a cancel landing before this point never reached the new generator
            if self._cancel.is_set():
                return self.matches
            for frame in frames:
                if self._cancel.is_set():
                    break
                self.process_frame(frame, self.frames_processed, fingerprint, is_simulation, source.total_samples)
                if self._cancel.is_set():
                    break
                self.frames_processed += 1
            else:
                if is_simulation and source.total_samples is not None:
                    self.state.update_simulation_progress(1.0)
        finally:
            close = getattr(frames, "close", None)
            if callable(close):
                close()
            self._source = None
            self.status = MatcherState.STOPPED
            self.state.release(self)
            logger.info("Matcher stopped after %d frames, %d matches", self.frames_processed, self.matches)
        return self.matches
