"""Debounce gate with optional leading edge and max_wait."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from cadenza.config import DebounceState, GateConfig
from cadenza.gates.base import BaseGate, ValueOutput
from cadenza.window import TimerSlot

if TYPE_CHECKING:
    from collections.abc import Callable

    from cadenza.scheduler import Scheduler

T = TypeVar("T")

logger = logging.getLogger(__name__)


class DebounceGate(ValueOutput[T], BaseGate):
    """Collapse a burst of updates into a single emission.

    How it works:
        - Each ``update`` stores the value and resets the quiet timer.
        - When the quiet timer expires, the last stored value is emitted.
        - With ``leading``, the update that starts a burst is emitted at once.
        - ``max_wait`` runs a second timer anchored at the start of the
          burst. When it fires the pending value is emitted and the burst
          carries on as a fresh one anchored at that instant.

    Example::

        delay=0.3, max_wait=1.0

        t=0.0 update("h")      -> quiet timer (0.3), max_wait timer (1.0)
        t=0.2 update("he")     -> quiet timer reset (0.3)
        t=0.4 update("hel")    -> quiet timer reset (0.3)
        t=0.7 quiet expires    -> value == "hel"

    Args:
        initial: Output before the first emission.
        config: Defaults to :meth:`GateConfig.debounce`.
        scheduler: Timer service. Defaults to the running asyncio loop.
        on_emit: Called with every emitted value.
    """

    __slots__ = (
        "_burst_started",
        "_emissions",
        "_emitted",
        "_has_pending",
        "_max_wait_timer",
        "_on_emit",
        "_pending",
        "_quiet_timer",
        "_value",
    )

    def __init__(
        self,
        initial: T,
        *,
        config: GateConfig | None = None,
        scheduler: Scheduler | None = None,
        on_emit: Callable[[T], Any] | None = None,
    ) -> None:
        BaseGate.__init__(self, config or GateConfig.debounce(), scheduler)
        self._init_output(initial, on_emit)
        self._quiet_timer = TimerSlot(self._scheduler)
        self._max_wait_timer = TimerSlot(self._scheduler)
        self._pending: T | None = None
        self._has_pending = False
        self._burst_started: float | None = None

    @property
    def state(self) -> DebounceState:
        if self._quiet_timer.active or self._max_wait_timer.active:
            return DebounceState.BURST_PENDING
        return DebounceState.QUIET

    @property
    def is_pending(self) -> bool:
        return self.state is DebounceState.BURST_PENDING

    @property
    def burst_started(self) -> float | None:
        """Scheduler time at which the current burst (or max_wait cycle) began."""
        return self._burst_started

    def update(self, value: T) -> T:
        """Feed a new value into the gate and return the current output."""
        self._ensure_open()
        config = self._config

        if self._burst_started is None:
            self._burst_started = self._scheduler.now()
            if config.max_wait is not None:
                self._max_wait_timer.schedule(config.max_wait, self._on_max_wait)
            if config.leading:
                self._quiet_timer.schedule(config.delay, self._on_quiet)
                self._clear_pending()
                self._emit(value)
                return self._value

        if config.trailing:
            self._pending = value
            self._has_pending = True
        self._quiet_timer.schedule(config.delay, self._on_quiet)
        return self._value

    def flush(self) -> T:
        """Emit the pending value now and end the burst. No-op if nothing is pending."""
        if self._has_pending:
            value = self._pending
            self._end_burst()
            self._emit(value)  # type: ignore[arg-type]
        return self._value

    def cancel(self) -> None:
        """Drop the pending value and end the burst without emitting."""
        self._end_burst()

    def _teardown(self) -> None:
        self._end_burst()

    def _end_burst(self) -> None:
        self._quiet_timer.cancel()
        self._max_wait_timer.cancel()
        self._burst_started = None
        self._clear_pending()

    def _clear_pending(self) -> None:
        self._pending = None
        self._has_pending = False

    def _on_quiet(self) -> None:
        self._max_wait_timer.cancel()
        self._burst_started = None
        self._deliver()

    def _on_max_wait(self) -> None:
        # Quiet timer is still running: the burst continues from here.
        max_wait = self._config.max_wait
        self._burst_started = self._scheduler.now()
        if max_wait is not None:
            self._max_wait_timer.schedule(max_wait, self._on_max_wait)
        logger.debug("%s max_wait reached", type(self).__name__)
        self._deliver()

    def _deliver(self) -> None:
        if not self._has_pending:
            return
        value = self._pending
        self._clear_pending()
        try:
            self._emit(value)  # type: ignore[arg-type]
        except Exception as exc:
            self._report_failure(exc)
