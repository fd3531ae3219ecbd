"""Timestamp-derived record ids that stay unique under rapid creation."""

from __future__ import annotations

import time
from typing import Callable, Container, Optional


class IdGenerator:
    """Issue millisecond-timestamp ids, bumping past the last issued value.

    Two creations inside the same millisecond (or a clock that steps
    backwards) would otherwise collide; the counter keeps ids strictly
    increasing for the life of the process.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._last = 0

    def next_value(self) -> int:
        now = int(self._clock() * 1000)
        self._last = now if now > self._last else self._last + 1
        return self._last

    def new_id(self, prefix: str = "", taken: Container[str] = ()) -> str:
        while True:
            candidate = f"{prefix}{self.next_value()}"
            if candidate not in taken:
                return candidate
