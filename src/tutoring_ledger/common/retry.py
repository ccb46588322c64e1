from __future__ import annotations

import logging
from typing import Optional

from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.constants import DEFAULT_RETRY_BACKOFF_SECONDS
from ..core.exceptions import TransientStorageFailure

logger = logging.getLogger(__name__)

_default_backoff = DEFAULT_RETRY_BACKOFF_SECONDS


def configure_retry(*, backoff: float) -> None:
    """Set the backoff used by decorators declared without an explicit one."""

    global _default_backoff
    if backoff < 0:
        raise ValueError("backoff must be >= 0")
    _default_backoff = float(backoff)


def _backoff_wait(backoff: Optional[float]):
    # Read the configured default per attempt so configure_retry applies to
    # repositories decorated at import time.
    def wait(retry_state) -> float:
        base = _default_backoff if backoff is None else backoff
        return wait_exponential(multiplier=base, min=0)(retry_state)

    return wait


def retry_transient(*, attempts: int = 2, backoff: Optional[float] = None):
    """Retry a storage operation on TransientStorageFailure.

    The default (2 attempts) means one internal retry before the failure
    reaches the caller. Backoff doubles between attempts.
    """

    return retry(
        retry=retry_if_exception_type(TransientStorageFailure),
        stop=stop_after_attempt(attempts),
        wait=_backoff_wait(backoff),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
