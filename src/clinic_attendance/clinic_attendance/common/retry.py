from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..core.constants import DEFAULT_STORE_RETRY_ATTEMPTS, DEFAULT_STORE_RETRY_BASE_DELAY
from ..core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_transient(
    operation: Callable[[], T],
    *,
    attempts: int = DEFAULT_STORE_RETRY_ATTEMPTS,
    base_delay: float = DEFAULT_STORE_RETRY_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "store operation",
) -> T:
    """Run ``operation`` retrying only on TransientStoreError with exponential backoff.

    Any other exception propagates on the first failure. After ``attempts``
    transient failures the last one is re-raised.
    """
    attempts = max(1, int(attempts))
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except TransientStoreError as e:
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", label, attempt, e)
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("%s failed (attempt %d), retrying in %.2fs: %s", label, attempt, delay, e)
            sleep(delay)
