"""Abstract base classes shared by every gate."""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from asyncio import Event
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from cadenza.config import GateConfig
from cadenza.scheduler import AsyncioScheduler, Scheduler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseGate(ABC):
    """Base class for all gates.

    A gate owns its timers and its configuration. Replacing ``config`` (or
    ``delay``) on a live gate takes effect at the next event; timers that
    are already running keep their deadline.

    Subclasses must implement :attr:`is_pending` and :meth:`_teardown`, and
    may extend :meth:`_validate` to reject configurations they cannot honor.

    Args:
        config: Gate configuration.
        scheduler: Timer service. Defaults to the running asyncio loop.
    """

    __slots__ = ("_closed", "_config", "_scheduler")

    def __init__(self, config: GateConfig, scheduler: Scheduler | None = None) -> None:
        self._validate(config)
        self._config = config
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._closed = False

    @property
    def config(self) -> GateConfig:
        return self._config

    @config.setter
    def config(self, value: GateConfig) -> None:
        self._validate(value)
        self._configure(value)

    @property
    def delay(self) -> float:
        return self._config.delay

    @delay.setter
    def delay(self, value: float) -> None:
        self.config = dataclasses.replace(self._config, delay=value)

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    @abstractmethod
    def is_pending(self) -> bool:
        """True while a deferred emission or burst is outstanding."""

    def close(self) -> None:
        """Tear the gate down, cancelling every live timer. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._teardown()

    @abstractmethod
    def _teardown(self) -> None:
        """Cancel timers and drop pending payloads."""

    def _configure(self, config: GateConfig) -> None:
        self._config = config

    def _validate(self, config: GateConfig) -> None:
        if not isinstance(config, GateConfig):
            raise TypeError(f"config must be a GateConfig, got {type(config).__name__}")

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")

    def _report_failure(self, exc: Exception) -> None:
        self._scheduler.report_exception(f"{type(self).__name__} deferred emission failed", exc, self)

    def __enter__(self) -> BaseGate:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    async def __aenter__(self) -> BaseGate:
        return self

    async def __aexit__(self, *_: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        cfg = self._config
        return (
            f"{type(self).__name__}(delay={cfg.delay}, leading={cfg.leading}, "
            f"trailing={cfg.trailing}, max_wait={cfg.max_wait}, closed={self._closed})"
        )


class ValueOutput(Generic[T]):
    """Mixin for gates whose emissions replace an externally visible ``value``.

    Emissions can be observed three ways: reading :attr:`value`, passing an
    ``on_emit`` listener, or awaiting :meth:`next_value` / iterating
    :meth:`values`. Concrete gates declare the ``_emissions``, ``_emitted``,
    ``_on_emit`` and ``_value`` slots.
    """

    __slots__ = ()

    _closed: bool
    _emissions: int
    _emitted: Event
    _on_emit: Callable[[T], Any] | None
    _value: T

    def _init_output(self, initial: T, on_emit: Callable[[T], Any] | None) -> None:
        self._value = initial
        self._on_emit = on_emit
        self._emitted = Event()
        self._emissions = 0

    @property
    def value(self) -> T:
        """The current output of the gate."""
        return self._value

    async def next_value(self) -> T:
        """Wait for the next emission after this call and return the new output.

        Emissions that happened before the call, including a leading one
        whose value ``update()`` already returned, do not count. Returns the
        current output if the gate is closed while waiting.
        """
        self._ensure_open()  # type: ignore[attr-defined]
        seen = self._emissions
        while self._emissions == seen and not self._closed:
            self._emitted.clear()
            await self._emitted.wait()
        return self._value

    async def values(self) -> AsyncIterator[T]:
        """Iterate over emitted values until the gate is closed."""
        seen = self._emissions
        while not self._closed:
            if self._emissions == seen:
                self._emitted.clear()
                await self._emitted.wait()
                continue
            seen = self._emissions
            yield self._value

    def close(self) -> None:
        super().close()  # type: ignore[misc]
        self._emitted.set()

    def _emit(self, value: T) -> None:
        self._value = value
        self._emissions += 1
        self._emitted.set()
        logger.debug("%s emitted %r", type(self).__name__, value)
        if self._on_emit is not None:
            self._on_emit(value)
