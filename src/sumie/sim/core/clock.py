from __future__ import annotations


class FrameClock:
    """Turns host timestamps (seconds) into per-frame deltas.

    The first tick always yields 0 so a late start never produces a large
    initial step; backwards timestamps clamp to 0.
    """

    def __init__(self) -> None:
        self._last: float | None = None
        self._elapsed = 0.0

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def tick(self, timestamp: float) -> float:
        if self._last is None:
            delta = 0.0
        else:
            delta = max(0.0, timestamp - self._last)
        self._last = timestamp
        self._elapsed += delta
        return delta

    def reset(self) -> None:
        self._last = None
        self._elapsed = 0.0
