"""
Fake clock for time-based tests.

Tracker, token store and collector all take a ``clock`` callable; handing
them one of these lets tests jump past retention windows instantly.
"""

import time


class FakeClock:
    """Callable returning a controllable epoch time."""

    def __init__(self, start: float | None = None) -> None:
        self._now = time.time() if start is None else start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Advance mock time by the given number of seconds."""
        self._now += seconds
        return self._now

    def set(self, value: float) -> None:
        self._now = value
