"""Debounced text channel: raw keystrokes in, settled query text out."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

from media_browser.models import SEARCH_DEBOUNCE_DELAY


class Timer(Protocol):
    """Handle for a scheduled callback."""

    def stop(self) -> None: ...


SetTimer = Callable[[float, Callable[[], None]], Timer]


class _LoopTimer:
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def stop(self) -> None:
        self._handle.cancel()


def loop_set_timer(delay: float, callback: Callable[[], None]) -> Timer:
    """Schedule ``callback`` on the running asyncio loop after ``delay`` seconds."""
    loop = asyncio.get_running_loop()
    return _LoopTimer(loop.call_later(delay, callback))


class DebouncedText:
    """Two-value text field.

    ``raw`` follows every keystroke. ``stable`` is the trimmed ``raw`` and
    only changes once ``raw`` has been quiet for ``delay`` seconds; each
    keystroke restarts the wait and drops the pending update.
    """

    def __init__(
        self,
        initial: str = "",
        *,
        delay: float = SEARCH_DEBOUNCE_DELAY,
        set_timer: SetTimer | None = None,
        on_settled: Callable[[str], None] | None = None,
    ) -> None:
        self._raw = initial
        self._stable = initial.strip()
        self._delay = delay
        self._set_timer = set_timer or loop_set_timer
        self._on_settled = on_settled
        self._timer: Timer | None = None

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def stable(self) -> str:
        return self._stable

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def set_raw(self, value: str) -> None:
        self._raw = value
        # Atomic swap pattern: capture and clear before stopping
        old_timer = self._timer
        self._timer = None
        if old_timer is not None:
            old_timer.stop()
        self._timer = self._set_timer(self._delay, self._settle)

    def flush(self) -> None:
        """Settle immediately, as on an explicit submit."""
        self.cancel()
        self._settle()

    def cancel(self) -> None:
        old_timer = self._timer
        self._timer = None
        if old_timer is not None:
            old_timer.stop()

    def _settle(self) -> None:
        self._timer = None
        value = self._raw.strip()
        if value == self._stable:
            return
        self._stable = value
        if self._on_settled is not None:
            self._on_settled(value)


__all__ = [
    "DebouncedText",
    "SetTimer",
    "Timer",
    "loop_set_timer",
]
