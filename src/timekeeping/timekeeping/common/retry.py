from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from ..core.exceptions import StoreUnavailable
from .cancellation import CancellationToken, check

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    *,
    attempts: int,
    backoff_seconds: float = 0.0,
    cancel: Optional[CancellationToken] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn`` retrying only on ``StoreUnavailable``.

    Waits ``backoff_seconds * 2**n`` between attempts. Business-rule errors
    propagate on the first raise.
    """
    attempts = max(1, int(attempts))
    attempt = 1
    while True:
        check(cancel)
        try:
            return fn()
        except StoreUnavailable as e:
            if attempt >= attempts:
                logger.error("Store unavailable after %d attempt(s): %s", attempt, e)
                raise
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning("Store unavailable (attempt %d/%d), retrying in %.2fs: %s", attempt, attempts, delay, e)
            if cancel is not None:
                remaining = cancel.remaining()
                if remaining is not None:
                    delay = min(delay, remaining)
            if delay > 0:
                sleep(delay)
        attempt += 1
