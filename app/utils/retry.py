import logging
import time
from typing import Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(fn: Callable[[], T], max_retries: int = 3, initial_delay: float = 1.0) -> T:
    """
    Call ``fn`` until it succeeds, sleeping ``initial_delay`` seconds after the
    first failure and doubling the delay after each subsequent one.

    Every exception is retried the same way. Once ``max_retries`` retries are
    spent, the last exception propagates unchanged.
    """
    retries_left = max(0, int(max_retries))
    delay = max(0.0, float(initial_delay))
    while True:
        try:
            return fn()
        except Exception as exc:
            if retries_left == 0:
                raise
            logger.warning(
                "Operation failed (%s). Retrying in %.2fs... (%s attempts left)",
                exc,
                delay,
                retries_left,
            )
            time.sleep(delay)
            retries_left -= 1
            delay *= 2
