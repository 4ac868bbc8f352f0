"""Configuration types for the cadenza library."""

from dataclasses import dataclass
from enum import StrEnum

DEFAULT_DEBOUNCE_DELAY = 0.5
DEFAULT_THROTTLE_DELAY = 0.3


class GateState(StrEnum):
    """Observable state of a throttle gate.

    IDLE:             No window open, nothing pending.
    WINDOW_OPEN:      Inside a rate-limit window, no trailing emission scheduled.
    PENDING_TRAILING: A trailing emission is scheduled for the window boundary.
    """

    IDLE = "idle"
    WINDOW_OPEN = "window_open"
    PENDING_TRAILING = "pending_trailing"


class DebounceState(StrEnum):
    """Observable state of a debounce gate."""

    QUIET = "quiet"
    BURST_PENDING = "burst_pending"


@dataclass(frozen=True, slots=True)
class GateConfig:
    """Configuration shared by every gate.

    Attributes:
        delay: Window length (throttle) or quiet period (debounce) in seconds.
        leading: Emit synchronously on the event that opens a window or burst.
        trailing: Emit the latest payload when the window or burst ends.
        max_wait: Upper bound in seconds on how long a debounce burst may
                  defer emission. None means no bound. Debounce only.
    """

    delay: float = DEFAULT_THROTTLE_DELAY
    leading: bool = True
    trailing: bool = True
    max_wait: float | None = None

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError(f"delay must be non-negative, got {self.delay}")

        if self.max_wait is not None and self.max_wait < 0:
            raise ValueError(f"max_wait must be non-negative or None, got {self.max_wait}")

        if self.max_wait is not None and self.max_wait < self.delay:
            raise ValueError(f"max_wait ({self.max_wait}) must be >= delay ({self.delay})")

        if not self.leading and not self.trailing:
            raise ValueError("at least one of leading or trailing must be enabled")

    @classmethod
    def debounce(
        cls,
        delay: float = DEFAULT_DEBOUNCE_DELAY,
        *,
        leading: bool = False,
        trailing: bool = True,
        max_wait: float | None = None,
    ) -> "GateConfig":
        """Config with the debounce defaults (0.5s, trailing only)."""
        return cls(delay=delay, leading=leading, trailing=trailing, max_wait=max_wait)

    @classmethod
    def throttle(
        cls,
        delay: float = DEFAULT_THROTTLE_DELAY,
        *,
        leading: bool = True,
        trailing: bool = True,
    ) -> "GateConfig":
        """Config with the throttle defaults (0.3s, both edges)."""
        return cls(delay=delay, leading=leading, trailing=trailing)
