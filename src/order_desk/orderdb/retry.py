from __future__ import annotations

import time
from typing import Callable, Tuple, Type, TypeVar

from ..errors import StorageUnavailable
from ..logging import get_logger


LOG = get_logger("orderdb-retry")

T = TypeVar("T")


def retry_call(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (StorageUnavailable,),
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Call `fn` until it succeeds or `attempts` runs out.

    Waits `delay * backoff ** (n - 1)` seconds after the n-th failure; a
    backoff of 1.0 gives a fixed delay. The last exception is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    wait = delay
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except exceptions as exc:
            if attempt == attempts:
                LOG.error("%s failed after %d attempt(s): %s", label, attempt, exc)
                raise
            LOG.warning("%s attempt %d/%d failed: %s", label, attempt, attempts, exc)
            sleep(wait)
            wait *= backoff
    raise AssertionError("unreachable")
