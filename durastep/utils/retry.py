from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..exceptions import StorageContentionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_delay(attempt: int, delay: float = 0.1, backoff: float = 1.0) -> float:
    """Compute the sleep before retry ``attempt`` (0-based).

    A ``backoff`` of 1.0 gives a fixed delay; larger values grow it
    exponentially.
    """
    return delay * backoff**attempt


def run_with_retry(
    operation: Callable[[], T],
    attempts: int = 5,
    delay: float = 0.1,
    backoff: float = 1.0,
    is_retryable: Callable[[BaseException], bool] = lambda exc: False,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``attempts`` are used up.

    Only exceptions accepted by ``is_retryable`` are retried. Any other
    exception propagates immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    last_error: BaseException | None = None
    for attempt in range(attempts):
        try:
            return operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            last_error = exc
            if attempt + 1 < attempts:
                wait = compute_delay(attempt, delay, backoff)
                logger.debug(
                    f"Retryable storage error on attempt {attempt + 1}/{attempts}, "
                    f"sleeping {wait:.3f}s: {exc}"
                )
                sleep(wait)

    raise StorageContentionError(
        f"Max retries ({attempts}) reached due to busy storage"
    ) from last_error
