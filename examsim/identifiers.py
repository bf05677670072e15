"""Identifier generation for stored exams and local users."""

from __future__ import annotations

import time
from typing import Callable


class IdFactory:
    """Millisecond timestamp ids that never repeat within a process.

    When the clock has not advanced (or went backwards) since the last id, the
    previous value plus one is issued instead.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)

    def observe(self, existing_id: str) -> None:
        """Account for an id issued elsewhere (e.g. loaded from storage)."""
        try:
            value = int(existing_id)
        except (TypeError, ValueError):
            return
        if value > self._last:
            self._last = value

