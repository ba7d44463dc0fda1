"""Exactly-once completion callback racing a run timeout.

The guard owns the caller's ``callback(error, *result)``.  Whichever of
``complete()`` or the timeout fires first wins; everything after is a
no-op.  The timer is cancelled on the normal path so a finished run can
never be reported as timed out later.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable

from render_harness.errors import HarnessTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 20000


class CompletionGuard:
    """Wrap *callback* so it runs at most once.

    Parameters
    ----------
    callback : Callable[..., Any]
        Called as ``callback(error, *result)``.
    timeout_ms : float
        Milliseconds before the guard completes with ``HarnessTimeout``.
    loop : asyncio.AbstractEventLoop | None
        Loop that owns the timer.  Defaults to the running loop, so the
        guard must be built inside one unless a loop is passed.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        timeout_ms: float = DEFAULT_TIMEOUT_MS,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")
        self._callback = callback
        self._timeout_ms = timeout_ms
        self._lock = threading.Lock()
        self._fired = False

        loop = loop or asyncio.get_running_loop()
        self._timer: asyncio.TimerHandle | None = loop.call_later(
            timeout_ms / 1000.0, self._on_timeout,
        )

    @property
    def fired(self) -> bool:
        """``True`` once the callback has been invoked."""
        return self._fired

    def complete(self, *args: Any) -> bool:
        """Forward *args* to the callback the first time only.

        Returns
        -------
        bool
            ``True`` if this call delivered the result, ``False`` if the
            guard had already fired.
        """
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()
        self._callback(*args)
        return True

    def cancel(self) -> None:
        """Stop the timer without firing (the caller gave up on the run)."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_timeout(self) -> None:
        logger.error("Test timed out after %.0f ms", self._timeout_ms)
        self.complete(HarnessTimeout("Test timed out"))
