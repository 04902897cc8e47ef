"""Thread-safe observable analysis state shared with presentation layers.

The active matching session writes, any number of observers read. Every
change swaps in a new immutable :class:`AnalysisSnapshot` under a lock, so a
reader always sees one complete version and never a half-applied update.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from soundmatch.errors import SessionActiveError
from soundmatch.utils.constants import MATCH


@dataclass(frozen=True)
class AnalysisSnapshot:
    version: int = 0
    is_running: bool = False
    similarity: float = 0.0
    distance: float = 0.0
    audio_level: float = 0.0
    total_checks: int = 0
    match_count: int = 0
    simulation_progress: float = 0.0
    last_processed_time: float = 0.0
    logs: Tuple[str, ...] = field(default_factory=tuple)


Subscriber = Callable[[AnalysisSnapshot], None]


class AnalysisState:
    """Versioned snapshot holder with an exclusive session owner."""

    def __init__(self, max_log_lines: int = MATCH.max_log_lines) -> None:
        self.max_log_lines = max_log_lines
        self._lock = threading.Lock()
        self._snapshot = AnalysisSnapshot()
        self._owner: Optional[object] = None
        self._subscribers: List[Subscriber] = []

    def snapshot(self) -> AnalysisSnapshot:
        with self._lock:
            return self._snapshot

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every published snapshot; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, mutate: Callable[[AnalysisSnapshot], dict]) -> AnalysisSnapshot:
        with self._lock:
            current = self._snapshot
            self._snapshot = replace(current, version=current.version + 1, **mutate(current))
            snapshot = self._snapshot
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(snapshot)
        return snapshot

    # ── session ownership ────────────────────────────────────────────────

    def acquire(self, owner: object) -> None:
        with self._lock:
            if self._owner is not None and self._owner is not owner:
                raise SessionActiveError("another matching session is already active")
            self._owner = owner

    def release(self, owner: object) -> None:
        with self._lock:
            if self._owner is owner:
                self._owner = None

    @property
    def active_owner(self) -> Optional[object]:
        with self._lock:
            return self._owner

    # ── updates ──────────────────────────────────────────────────────────

    def update_similarity(self, similarity: float, distance: float, audio_level: float) -> AnalysisSnapshot:
        return self._publish(
            lambda s: dict(
                similarity=similarity,
                distance=distance,
                audio_level=audio_level,
                total_checks=s.total_checks + 1,
                last_processed_time=time.time(),
            )
        )

    def update_simulation_progress(self, progress: float) -> AnalysisSnapshot:
        progress = min(1.0, max(0.0, float(progress)))
        return self._publish(lambda s: dict(simulation_progress=progress))

    def increment_match_count(self) -> AnalysisSnapshot:
        return self._publish(lambda s: dict(match_count=s.match_count + 1))

    def reset_stats(self) -> AnalysisSnapshot:
        return self._publish(lambda s: dict(total_checks=0, match_count=0, simulation_progress=0.0))

    def set_running(self, running: bool) -> AnalysisSnapshot:
        if running:
            return self._publish(lambda s: dict(is_running=True))
        return self._publish(
            lambda s: dict(
                is_running=False,
                similarity=0.0,
                distance=0.0,
                audio_level=0.0,
            )
        )

    def add_log(self, line: str) -> AnalysisSnapshot:
        return self._publish(lambda s: dict(logs=(s.logs + (line,))[-self.max_log_lines :]))
