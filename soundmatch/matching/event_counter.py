"""Edge-triggered debounce for match events."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MatchEventCounter:
    """Turns a per-frame matched/unmatched signal into discrete events.

    A trigger fires only on a non-match -> match edge, and only when at
    least ``min_interval_ms`` has passed since the previous trigger. A clock
    that moves backwards (a new session restarting its synthetic clock)
    clears the trigger memory.
    """

    _previous_matched: bool = field(default=False)
    _last_trigger_ms: Optional[float] = field(default=None)

    def should_trigger(self, is_matched: bool, now_ms: float, min_interval_ms: float) -> bool:
        if not is_matched:
            self._previous_matched = False
            return False

        if self._last_trigger_ms is not None and now_ms < self._last_trigger_ms:
            self._last_trigger_ms = None
            self._previous_matched = False

        interval_ok = self._last_trigger_ms is None or now_ms - self._last_trigger_ms >= min_interval_ms
        triggered = not self._previous_matched and interval_ok

        self._previous_matched = True
        if triggered:
            self._last_trigger_ms = now_ms
        return triggered

    def reset(self) -> None:
        self._previous_matched = False
        self._last_trigger_ms = None
