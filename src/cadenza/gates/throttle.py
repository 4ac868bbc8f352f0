"""Throttle gates: rate-limited values and rate-limited callbacks.

Both gates share one windowing algorithm. An event either fires on the
leading edge (window closed), is parked as the trailing payload (window
open, latest payload wins), or is dropped (window open, trailing off).
The trailing timer is anchored to the window boundary and is never
restarted by later events, so a parked payload waits at most one window.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from cadenza.config import GateConfig, GateState
from cadenza.gates.base import BaseGate, ValueOutput
from cadenza.window import TimerSlot, Window

if TYPE_CHECKING:
    from collections.abc import Callable

    from cadenza.scheduler import Scheduler

T = TypeVar("T")
P = TypeVar("P")

logger = logging.getLogger(__name__)


class _WindowedGate(BaseGate, Generic[P]):
    """Windowing state machine shared by the throttle gates.

    Transitions::

        IDLE             --event, leading-->    WINDOW_OPEN       (fire now)
        IDLE             --event, !leading-->   PENDING_TRAILING  (due at window end, at once if it passed)
        WINDOW_OPEN      --event, trailing-->   PENDING_TRAILING
        PENDING_TRAILING --event-->             PENDING_TRAILING  (payload replaced)
        PENDING_TRAILING --timer fires-->       WINDOW_OPEN       (re-anchored)
        PENDING_TRAILING --flush-->             WINDOW_OPEN
        PENDING_TRAILING --cancel-->            IDLE
    """

    __slots__ = ("_has_pending", "_pending", "_timer", "_window")

    def __init__(self, config: GateConfig, scheduler: Scheduler | None = None) -> None:
        super().__init__(config, scheduler)
        self._window = Window(config.delay)
        self._timer = TimerSlot(self._scheduler)
        self._pending: P | None = None
        self._has_pending = False

    def _validate(self, config: GateConfig) -> None:
        super()._validate(config)
        if config.max_wait is not None:
            raise ValueError("max_wait is only supported by debounce gates")

    def _configure(self, config: GateConfig) -> None:
        super()._configure(config)
        self._window.duration = config.delay

    @property
    def state(self) -> GateState:
        if self._timer.active:
            return GateState.PENDING_TRAILING
        if self._window.is_open(self._scheduler.now()):
            return GateState.WINDOW_OPEN
        return GateState.IDLE

    @property
    def is_pending(self) -> bool:
        return self._has_pending

    @property
    def window(self) -> Window:
        return self._window

    @abstractmethod
    def _fire(self, payload: P) -> Any:
        """Deliver *payload*: emit the value or call the function."""

    def _submit(self, payload: P) -> Any:
        self._ensure_open()
        config = self._config
        now = self._scheduler.now()

        if config.leading and not self._window.is_open(now):
            self._timer.cancel()
            self._clear_pending()
            self._window.open(now)
            return self._fire(payload)

        if not config.trailing:
            logger.debug("%s dropped event inside window", type(self).__name__)
            return None

        if self._window.anchor is None:
            # Nothing has fired yet: this event opens the first window.
            self._window.open(now)
        self._pending = payload
        self._has_pending = True
        if not self._timer.active:
            self._timer.schedule(self._window.remaining(now), self._on_window_close)
        return None

    def flush(self) -> Any:
        """Deliver the parked payload now. No-op if nothing is parked."""
        if not self._has_pending:
            return None
        payload = self._pending
        self._timer.cancel()
        self._clear_pending()
        self._window.open(self._scheduler.now())
        return self._fire(payload)  # type: ignore[arg-type]

    def cancel(self) -> None:
        """Discard the parked payload without delivering it. No-op if nothing is parked."""
        if not self._has_pending:
            return
        self._timer.cancel()
        self._clear_pending()
        self._window.reset()

    def _teardown(self) -> None:
        self._timer.cancel()
        self._clear_pending()

    def _clear_pending(self) -> None:
        self._pending = None
        self._has_pending = False

    def _on_window_close(self) -> None:
        if not self._has_pending:
            return
        payload = self._pending
        self._clear_pending()
        self._window.open(self._scheduler.now())
        try:
            self._fire(payload)  # type: ignore[arg-type]
        except Exception as exc:
            self._report_failure(exc)


class ThrottleGate(ValueOutput[T], _WindowedGate[T]):
    """Let a value through at most once per window.

    Example::

        delay=0.1, leading=True, trailing=True

        t=0.00 update("A") -> value == "A" (leading)
        t=0.03 update("B") -> trailing scheduled for t=0.10
        t=0.09 update("D") -> replaces "B", timer untouched
        t=0.10 timer fires -> value == "D", window re-anchored at 0.10

    Args:
        initial: Output before the first emission.
        config: Defaults to :meth:`GateConfig.throttle`.
        scheduler: Timer service. Defaults to the running asyncio loop.
        on_emit: Called with every emitted value.
    """

    __slots__ = ("_emissions", "_emitted", "_on_emit", "_value")

    def __init__(
        self,
        initial: T,
        *,
        config: GateConfig | None = None,
        scheduler: Scheduler | None = None,
        on_emit: Callable[[T], Any] | None = None,
    ) -> None:
        _WindowedGate.__init__(self, config or GateConfig.throttle(), scheduler)
        self._init_output(initial, on_emit)

    def update(self, value: T) -> T:
        """Feed a new value into the gate and return the current output."""
        self._submit(value)
        return self._value

    def flush(self) -> T:
        super().flush()
        return self._value

    def _fire(self, payload: T) -> None:
        self._emit(payload)


class ThrottledCallback(_WindowedGate[tuple[tuple[Any, ...], dict[str, Any]]]):
    """Invoke a function at most once per window.

    The function is looked up when the call actually happens, so assigning
    a new one to :attr:`func` also affects calls that are already parked.

    Args:
        func: The function to throttle.
        config: Defaults to :meth:`GateConfig.throttle`.
        scheduler: Timer service. Defaults to the running asyncio loop.
    """

    __slots__ = ("_func",)

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        config: GateConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not callable(func):
            raise TypeError(f"func must be callable, got {type(func).__name__}")
        super().__init__(config or GateConfig.throttle(), scheduler)
        self._func = func

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    @func.setter
    def func(self, value: Callable[..., Any]) -> None:
        if not callable(value):
            raise TypeError(f"func must be callable, got {type(value).__name__}")
        self._func = value

    @property
    def is_throttled(self) -> bool:
        """True while a trailing call is parked."""
        return self._has_pending

    def invoke(self, *args: Any, **kwargs: Any) -> Any:
        """Call through the gate.

        Returns the function's result when the call runs on the leading
        edge, ``None`` when it is parked or dropped.
        """
        return self._submit((args, kwargs))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.invoke(*args, **kwargs)

    def _fire(self, payload: tuple[tuple[Any, ...], dict[str, Any]]) -> Any:
        args, kwargs = payload
        return self._func(*args, **kwargs)
