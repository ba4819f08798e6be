"""Bounded waiting and retrying shared by the delivery channels.

`sleep` and `clock` are injectable so tests can run without real delays.
Passing a `threading.Event` as `cancel` aborts a pending wait early.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, TypeVar

T = TypeVar("T")

SleepFn = Callable[[float], None]
ClockFn = Callable[[], float]
OnErrorFn = Callable[[int, Exception], None]


class RetryCancelled(RuntimeError):
    """Raised when the cancel event is set while waiting."""


def wait_until(
    predicate: Callable[[], bool],
    *,
    timeout: float,
    interval: float,
    sleep: SleepFn = time.sleep,
    clock: ClockFn = time.monotonic,
    cancel: threading.Event | None = None,
) -> bool:
    """Poll `predicate` every `interval` seconds until true or `timeout` elapses."""
    deadline = clock() + timeout
    while True:
        if predicate():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        _pause(min(interval, remaining), sleep, cancel)


def retry_call(
    fn: Callable[[], T],
    *,
    attempts: int,
    delay: float,
    backoff: float = 1.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    sleep: SleepFn = time.sleep,
    cancel: threading.Event | None = None,
    on_error: OnErrorFn | None = None,
) -> T:
    """Call `fn` up to `attempts` times, waiting `delay` between failures.

    `backoff=1.0` keeps the delay fixed; larger values multiply it after each
    failed attempt. The last error is re-raised once attempts run out.
    Exceptions outside `retry_on` propagate immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    wait = delay
    for attempt in range(1, attempts + 1):
        if cancel is not None and cancel.is_set():
            raise RetryCancelled(f"cancelled before attempt {attempt}")
        try:
            return fn()
        except retry_on as exc:
            if on_error is not None:
                on_error(attempt, exc)
            if attempt >= attempts:
                raise
            _pause(wait, sleep, cancel)
            wait *= backoff

    raise AssertionError("unreachable")  # pragma: no cover


def _pause(seconds: float, sleep: SleepFn, cancel: threading.Event | None) -> None:
    if cancel is None:
        sleep(seconds)
        return
    if cancel.wait(seconds):
        raise RetryCancelled("cancelled while waiting")
