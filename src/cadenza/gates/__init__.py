from cadenza.gates.base import BaseGate, ValueOutput
from cadenza.gates.debounce import DebounceGate
from cadenza.gates.throttle import ThrottledCallback, ThrottleGate

__all__ = [
    "BaseGate",
    "DebounceGate",
    "ThrottleGate",
    "ThrottledCallback",
    "ValueOutput",
]
