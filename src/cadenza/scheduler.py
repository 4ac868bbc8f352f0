"""Timer services that drive the gates.

Every gate schedules its deadlines through a :class:`Scheduler`. The default
:class:`AsyncioScheduler` runs on the current event loop; the
:class:`ManualScheduler` keeps a virtual clock that only moves when told to,
which makes timing fully deterministic in simulations and tests.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from asyncio import AbstractEventLoop, get_running_loop
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """What a scheduler hands back from :meth:`Scheduler.call_later`."""

    def cancel(self) -> None: ...

    def when(self) -> float: ...


class Scheduler(ABC):
    """Host timer service: a clock plus one-shot deferred callbacks.

    Callbacks run on the same thread that scheduled them, at or after the
    requested delay. Nothing stronger is promised.
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` once, *delay* seconds from now."""

    @abstractmethod
    def report_exception(self, message: str, exc: BaseException, source: object | None = None) -> None:
        """Report a failure raised where no caller is waiting for it."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop.

    The loop is resolved lazily on first use, so gates may be constructed
    outside a coroutine as long as they are driven from inside one.
    """

    __slots__ = ("_loop",)

    def __init__(self, loop: AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> AbstractEventLoop:
        if self._loop is None:
            self._loop = get_running_loop()
        return self._loop

    def now(self) -> float:
        return self._get_loop().time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return self._get_loop().call_later(delay, callback, *args)

    def report_exception(self, message: str, exc: BaseException, source: object | None = None) -> None:
        context: dict[str, Any] = {"message": message, "exception": exc}
        if source is not None:
            context["gate"] = source
        self._get_loop().call_exception_handler(context)

    def __repr__(self) -> str:
        return f"AsyncioScheduler(loop={self._loop!r})"


class _ManualHandle:
    __slots__ = ("_args", "_callback", "_cancelled", "_when")

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def when(self) -> float:
        return self._when

    def _run(self) -> None:
        self._callback(*self._args)


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler advanced explicitly by the caller.

    Due callbacks run in deadline order (FIFO among equal deadlines), each
    one observing ``now()`` equal to its own deadline.

    Example::

        clock = ManualScheduler()
        gate = ThrottleGate("", scheduler=clock)
        gate.update("a")      # leading emission at t=0
        gate.update("b")      # trailing scheduled for t=0.3
        clock.advance(0.3)    # gate.value == "b"
    """

    __slots__ = ("_counter", "_now", "_queue")

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._counter = itertools.count()

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not run or been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled())

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (handle.when(), next(self._counter), handle))
        return handle

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, running everything that falls due."""
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards, got {seconds}")
        self.advance_to(self._now + seconds)

    def advance_to(self, deadline: float) -> None:
        """Move the clock to *deadline*, running everything that falls due."""
        if deadline < self._now:
            raise ValueError(f"cannot move the clock backwards from {self._now} to {deadline}")
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = when
            handle._run()
        self._now = deadline

    def report_exception(self, message: str, exc: BaseException, source: object | None = None) -> None:
        logger.error("%s (gate=%r)", message, source, exc_info=exc)

    def __repr__(self) -> str:
        return f"ManualScheduler(now={self._now}, pending={self.pending})"
