# app/core/retry.py
"""Bounded retry with linear backoff for serialized database commits"""
import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError

from app.config.settings import get_settings
from app.core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# lock_not_available, query_canceled (statement timeout), deadlock_detected,
# serialization_failure
TRANSIENT_SQLSTATES = {"55P03", "57014", "40P01", "40001"}


def is_transient_error(exc: BaseException) -> bool:
    """Whether a failed transaction is worth running again"""
    if isinstance(exc, TransientStoreError):
        return True
    if not isinstance(exc, OperationalError):
        return False

    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in TRANSIENT_SQLSTATES:
        return True

    message = str(exc).lower()
    return "timeout" in message or "timed out" in message or "deadlock detected" in message


class RetryPolicy:
    """
    Runs an operation up to max_attempts times, sleeping attempt * backoff
    seconds between attempts. Only transient errors are retried; anything else
    propagates on the first failure.
    """

    def __init__(
            self,
            max_attempts: Optional[int] = None,
            backoff_seconds: Optional[float] = None,
            sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.max_attempts = max_attempts or settings.BOOKING_TX_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else settings.BOOKING_TX_RETRY_BACKOFF_SECONDS
        )
        self._sleep = sleep

    def run(self, operation: Callable[[], T], description: str = "transaction") -> T:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if not is_transient_error(exc):
                    raise
                last_error = exc
                if attempt == self.max_attempts:
                    break

                wait_time = attempt * self.backoff_seconds
                logger.warning(
                    f"Transient failure in {description} "
                    f"(attempt {attempt}/{self.max_attempts}). Retrying in {wait_time:.1f}s: {exc}"
                )
                self._sleep(wait_time)

        logger.error(f"{description} failed after {self.max_attempts} attempts: {last_error}")
        raise TransientStoreError(
            f"The booking store is busy, please try again ({self.max_attempts} attempts failed)"
        ) from last_error
