"""Virtual clock used as the renderer's time source.

Animations, fades and transitions read ``now()`` instead of wall time,
so a render test only moves forward when a ``["wait", ms]`` operation
advances the clock.  One clock belongs to one harness run; it is handed
to the renderer and the interpreter explicitly, never shared globally.
"""

from __future__ import annotations


class VirtualClock:
    """Mutable millisecond counter.

    Parameters
    ----------
    start_ms : float
        Initial value of ``now()``.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms

    def now(self) -> float:
        """Current virtual time in milliseconds."""
        return self._now

    def advance(self, duration_ms: float) -> float:
        """Move time forward by *duration_ms* and return the new value."""
        if duration_ms < 0:
            raise ValueError(f"cannot move the clock backwards ({duration_ms} ms)")
        self._now += duration_ms
        return self._now

    def __repr__(self) -> str:
        return f"VirtualClock(now={self._now!r})"
