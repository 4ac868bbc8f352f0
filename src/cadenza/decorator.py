"""Decorator API for throttling and debouncing plain functions."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar, cast, overload

from cadenza.config import DEFAULT_DEBOUNCE_DELAY, DEFAULT_THROTTLE_DELAY, GateConfig
from cadenza.gates.debounce import DebounceGate
from cadenza.gates.throttle import ThrottledCallback
from cadenza.scheduler import Scheduler

F = TypeVar("F", bound=Callable[..., Any])


def _reject_coroutine(fn: Callable[..., Any], name: str) -> None:
    if inspect.iscoroutinefunction(fn):
        raise TypeError(f"@{name} only supports sync functions.")


@overload
def throttle(
    func: F,
    /,
) -> F: ...


@overload
def throttle(
    *,
    delay: float = DEFAULT_THROTTLE_DELAY,
    leading: bool = True,
    trailing: bool = True,
    scheduler: Scheduler | None = None,
) -> Callable[[F], F]: ...


def throttle(
    func: F | None = None,
    /,
    *,
    delay: float = DEFAULT_THROTTLE_DELAY,
    leading: bool = True,
    trailing: bool = True,
    scheduler: Scheduler | None = None,
) -> F | Callable[[F], F]:
    """Decorator that lets a function run at most once per window.

    Calls on the leading edge run immediately and return the function's
    result. Calls inside the window are parked (latest arguments win) and
    run when the window closes; they return ``None``.

    Args:
        func: The function to decorate (when used without parentheses).
        delay: Window length in seconds.
        leading: Run the call that opens a window immediately.
        trailing: Run the last parked call when the window closes.
        scheduler: Timer service. Defaults to the running asyncio loop.

    Examples:
    ```python
        @throttle(delay=0.1)
        def on_scroll(offset: int) -> None:
            redraw(offset)

        on_scroll(10)          # runs now
        on_scroll(20)          # parked
        on_scroll.flush()      # runs on_scroll(20) now
    ```
    """
    config = GateConfig.throttle(delay, leading=leading, trailing=trailing)

    def decorator(fn: F) -> F:
        _reject_coroutine(fn, "throttle")
        gate = ThrottledCallback(fn, config=config, scheduler=scheduler)

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return gate.invoke(*args, **kwargs)

        wrapper.gate = gate  # type: ignore[attr-defined]
        wrapper.cancel = gate.cancel  # type: ignore[attr-defined]
        wrapper.flush = gate.flush  # type: ignore[attr-defined]
        wrapper.close = gate.close  # type: ignore[attr-defined]

        return cast("F", wrapper)

    if func is not None:
        return decorator(func)

    return decorator


@overload
def debounce(
    func: F,
    /,
) -> F: ...


@overload
def debounce(
    *,
    delay: float = DEFAULT_DEBOUNCE_DELAY,
    leading: bool = False,
    trailing: bool = True,
    max_wait: float | None = None,
    scheduler: Scheduler | None = None,
) -> Callable[[F], F]: ...


def debounce(
    func: F | None = None,
    /,
    *,
    delay: float = DEFAULT_DEBOUNCE_DELAY,
    leading: bool = False,
    trailing: bool = True,
    max_wait: float | None = None,
    scheduler: Scheduler | None = None,
) -> F | Callable[[F], F]:
    """Decorator that runs a function once a burst of calls has gone quiet.

    Every call records its arguments; the function runs with the most
    recent ones after *delay* seconds without calls (or after *max_wait*
    seconds of continuous calls). The decorated function returns ``None``.

    Args:
        func: The function to decorate (when used without parentheses).
        delay: Quiet period in seconds.
        leading: Also run the first call of a burst immediately.
        trailing: Run the last call of a burst once it goes quiet.
        max_wait: Maximum seconds a burst may defer the call, or None.
        scheduler: Timer service. Defaults to the running asyncio loop.
    """
    config = GateConfig.debounce(delay, leading=leading, trailing=trailing, max_wait=max_wait)

    def decorator(fn: F) -> F:
        _reject_coroutine(fn, "debounce")

        def deliver(call: tuple[tuple[Any, ...], dict[str, Any]]) -> None:
            args, kwargs = call
            fn(*args, **kwargs)

        gate: DebounceGate[Any] = DebounceGate(None, config=config, scheduler=scheduler, on_emit=deliver)

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> None:
            gate.update((args, kwargs))

        wrapper.gate = gate  # type: ignore[attr-defined]
        wrapper.cancel = gate.cancel  # type: ignore[attr-defined]
        wrapper.flush = gate.flush  # type: ignore[attr-defined]
        wrapper.close = gate.close  # type: ignore[attr-defined]

        return cast("F", wrapper)

    if func is not None:
        return decorator(func)

    return decorator
