"""Runs one matching session at a time on a worker thread."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from soundmatch.audio.mfcc import FeatureExtractor, default_extractor
from soundmatch.audio.sources import AudioSource
from soundmatch.errors import SoundMatchError
from soundmatch.matching.alerts import AlertHandler
from soundmatch.matching.fingerprint import Fingerprint
from soundmatch.matching.state import AnalysisState
from soundmatch.matching.streaming import MatchSettings, StreamingMatcher

logger = logging.getLogger(__name__)


@dataclass
class SessionRunner:
    """Owns the lifecycle of matcher sessions writing to one :class:`AnalysisState`.

    ``start`` tears down any previous session (cancel + join) before the new
    one begins, so two sessions never write to the same state.
    """

    state: AnalysisState = field(default_factory=AnalysisState)
    settings: MatchSettings = field(default_factory=MatchSettings)
    extractor: FeatureExtractor = field(default_factory=default_extractor)
    join_timeout: float = 5.0
    error: Optional[BaseException] = field(default=None, init=False)
    _matcher: Optional[StreamingMatcher] = field(default=None, init=False, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def matcher(self) -> Optional[StreamingMatcher]:
        return self._matcher

    def start(
        self,
        source: AudioSource,
        fingerprint: Optional[Fingerprint],
        alert_handler: Optional[AlertHandler] = None,
        is_simulation: bool = False,
    ) -> StreamingMatcher:
        with self._lock:
            self._stop_locked()
            matcher = StreamingMatcher(
                self.state,
                settings=self.settings,
                alert_handler=alert_handler,
                extractor=self.extractor,
            )
            self.error = None
            self._matcher = matcher
            self._thread = threading.Thread(
                target=self._run,
                args=(matcher, source, fingerprint, is_simulation),
                name="soundmatch-session",
                daemon=True,
            )
            self.state.reset_stats()
            self.state.set_running(True)
            self.state.add_log("--- SIMULATION START ---" if is_simulation else "--- CAPTURE START ---")
            self._thread.start()
            return matcher

    def _run(
        self,
        matcher: StreamingMatcher,
        source: AudioSource,
        fingerprint: Optional[Fingerprint],
        is_simulation: bool,
    ) -> None:
        try:
            matcher.run(source, fingerprint, is_simulation=is_simulation)
        except SoundMatchError as exc:
            self.error = exc
            logger.error("Session failed: %s", exc)
            self.state.add_log(f"Session failed: {exc}")
        except Exception as exc:
            self.error = exc
            logger.exception("Session crashed")
            self.state.add_log(f"Session failed: {type(exc).__name__}: {exc}")
        else:
            self.state.add_log("--- SIMULATION END ---" if is_simulation else "--- CAPTURE END ---")
        finally:
            self.state.set_running(False)

    def _stop_locked(self, timeout: Optional[float] = None) -> None:
        matcher, thread = self._matcher, self._thread
        if matcher is not None:
            matcher.cancel()
        if thread is not None:
            thread.join(self.join_timeout if timeout is None else timeout)
            if thread.is_alive():
                raise RuntimeError("matching session did not stop within the join timeout")
        self._thread = None

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the current session and wait up to ``timeout`` seconds for it to end."""
        with self._lock:
            self._stop_locked(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current session ends; ``True`` if it has.

        A session that failed (e.g. the capture device could not be opened)
        re-raises its error here.
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return False
        if self.error is not None:
            raise self.error
        return True
