"""cadenza — time-windowed execution gates for Python.

Debounce and throttle state machines over a stream of updates or calls,
with leading/trailing edges, max_wait, and explicit cancel/flush.

Value usage:

    from cadenza import DebounceGate, GateConfig

    search = DebounceGate("", config=GateConfig.debounce(0.3, max_wait=1.0))

    search.update("h")
    search.update("he")
    term = await search.next_value()  # "he", once typing pauses

Callback usage:

    from cadenza import throttle

    @throttle(delay=0.1)
    def on_resize(width: int, height: int) -> None:
        relayout(width, height)
"""

import logging

from cadenza.config import DebounceState, GateConfig, GateState
from cadenza.decorator import debounce, throttle
from cadenza.gates.base import BaseGate, ValueOutput
from cadenza.gates.debounce import DebounceGate
from cadenza.gates.throttle import ThrottledCallback, ThrottleGate
from cadenza.keyed import KeyedGates
from cadenza.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from cadenza.window import TimerSlot, Window

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AsyncioScheduler",
    "BaseGate",
    "DebounceGate",
    "DebounceState",
    "GateConfig",
    "GateState",
    "KeyedGates",
    "ManualScheduler",
    "Scheduler",
    "ThrottleGate",
    "ThrottledCallback",
    "TimerSlot",
    "ValueOutput",
    "Window",
    "debounce",
    "throttle",
]

__version__ = "0.1.0"
