"""Rate-limit window and single-handle timer slot shared by the gates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from cadenza.scheduler import Scheduler, TimerHandle


class Window:
    """The span ``[anchor, anchor + duration)`` in which no leading emission happens.

    The anchor never moves backwards while the window is live; ``reset()``
    closes the window entirely.
    """

    __slots__ = ("anchor", "duration")

    def __init__(self, duration: float, anchor: float | None = None) -> None:
        self.duration = duration
        self.anchor = anchor

    def is_open(self, now: float) -> bool:
        if self.anchor is None:
            return False
        return now - self.anchor < self.duration

    def remaining(self, now: float) -> float:
        """Seconds until the window closes, never negative."""
        if self.anchor is None:
            return 0.0
        return max(0.0, self.anchor + self.duration - now)

    def open(self, now: float) -> None:
        if self.anchor is None or now > self.anchor:
            self.anchor = now

    def reset(self) -> None:
        self.anchor = None

    def __repr__(self) -> str:
        return f"Window(anchor={self.anchor}, duration={self.duration})"


class TimerSlot:
    """Owns at most one outstanding timer handle.

    Scheduling always disposes of the previous handle first, so a slot can
    never leak a second in-flight timer.
    """

    __slots__ = ("_handle", "_scheduler")

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def deadline(self) -> float | None:
        """Scheduler time at which the current timer fires, if any."""
        return self._handle.when() if self._handle is not None else None

    def schedule(self, delay: float, callback: Callable[[], Any]) -> None:
        self.cancel()
        self._handle = self._scheduler.call_later(max(0.0, delay), self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], Any]) -> None:
        self._handle = None
        callback()
