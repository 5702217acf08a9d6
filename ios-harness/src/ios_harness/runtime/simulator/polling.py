from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class RetryPolicy:
    timeout_ms: int = 4000
    delay_ms: int = 300


APP_ALIVE_POLICY = RetryPolicy(timeout_ms=4000, delay_ms=300)


def retry_until_true(
    timeout_ms: int,
    delay_ms: int,
    predicate: Callable[[], bool],
    *,
    clock: Optional[Callable[[], float]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """Poll `predicate` until it returns True or `timeout_ms` elapses.

    Returns False on timeout instead of raising. The deadline is checked after
    each sleep, so a slow predicate can push the total past `timeout_ms`.
    """

    clock = clock or time.monotonic
    sleep = sleep or time.sleep
    start = clock()
    while True:
        if predicate():
            return True
        sleep(max(0.0, delay_ms / 1000.0))
        if (clock() - start) * 1000.0 >= timeout_ms:
            return False


def retry_with_policy(policy: RetryPolicy, predicate: Callable[[], bool], **kwargs) -> bool:
    return retry_until_true(policy.timeout_ms, policy.delay_ms, predicate, **kwargs)
