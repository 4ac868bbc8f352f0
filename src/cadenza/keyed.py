"""One gate per key, with idle-gate reaping."""

import asyncio
import contextlib
import time
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from cadenza.gates.base import BaseGate

G = TypeVar("G", bound=BaseGate)


@dataclass
class _Entry(Generic[G]):
    gate: G
    last_activity: float = field(default_factory=time.monotonic)


class KeyedGates(Generic[G]):
    """Keeps an independent gate per logical call site.

    Gates are built lazily by *factory* the first time a key is seen. Gates
    with nothing pending that have not been touched for ``idle_timeout``
    seconds are closed and forgotten by :meth:`reap`, which :meth:`start`
    runs periodically on the event loop.

    Args:
        factory: Builds the gate for a key.
        idle_timeout: Seconds of inactivity before a gate may be reaped.
        clock: Source of activity timestamps.

    Example::

        limits = KeyedGates(lambda user: ThrottledCallback(notify, config=cfg))

        limits.get("alice")("new message")
        limits.get("bob")("new message")

        await limits.close()
    """

    __slots__ = ("_clock", "_entries", "_factory", "_reaper", "idle_timeout")

    def __init__(
        self,
        factory: Callable[[Hashable], G],
        *,
        idle_timeout: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if idle_timeout <= 0:
            raise ValueError(f"idle_timeout must be positive, got {idle_timeout}")
        self._factory = factory
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._entries: dict[Hashable, _Entry[G]] = {}
        self._reaper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def get(self, key: Hashable) -> G:
        """Return the gate for *key*, creating it on first use."""
        entry = self._entries.get(key)
        if entry is None or entry.gate.closed:
            entry = _Entry(self._factory(key), self._clock())
            self._entries[key] = entry
        else:
            entry.last_activity = self._clock()
        return entry.gate

    def discard(self, key: Hashable) -> None:
        """Close and forget the gate for *key*, if any."""
        entry = self._entries.pop(key, None)
        if entry is not None:
            entry.gate.close()

    def reap(self) -> list[Hashable]:
        """Close idle gates and return their keys."""
        now = self._clock()
        idle = [
            key
            for key, entry in self._entries.items()
            if not entry.gate.is_pending and now - entry.last_activity > self.idle_timeout
        ]
        for key in idle:
            self.discard(key)
        return idle

    async def start(self) -> None:
        """Start the periodic reaper on the running loop (idempotent)."""
        if self._reaper is None:
            self._reaper = asyncio.create_task(self._reap_loop())

    async def close(self) -> None:
        """Stop the reaper and close every gate."""
        if self._reaper is not None:
            self._reaper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper
            self._reaper = None

        for entry in self._entries.values():
            entry.gate.close()
        self._entries.clear()

    async def _reap_loop(self) -> None:
        while True:
            await asyncio.sleep(self.idle_timeout / 2)
            self.reap()

    async def __aenter__(self) -> "KeyedGates[G]":
        await self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
