"""Bounded polling of fallible checks."""

import time
from typing import Callable, Tuple, Type, TypeVar

from imageferry.models.transfer import RetryPolicy

T = TypeVar("T")


def wait_for(
    check: Callable[[], T],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call check until it stops raising or the policy's time budget runs out.

    The first call happens immediately. Elapsed time is measured from that
    first call, so time spent sleeping counts against max_wait.

    Args:
        check: Callable that raises to signal "not yet"
        policy: Time budget and poll interval
        retry_on: Exception types treated as a failed attempt
        clock: Monotonic clock in seconds
        sleep: Sleep function

    Returns:
        Whatever the first successful check returned

    Raises:
        The exception raised by the last failed attempt, once the budget is spent.
        Exceptions outside retry_on propagate immediately.
    """
    started = clock()
    while True:
        try:
            return check()
        except retry_on:
            if clock() - started >= policy.max_wait:
                raise
        sleep(policy.poll_interval)
