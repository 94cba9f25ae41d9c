"""
Retry helpers

Exponential backoff for kubectl/helm calls, built on tenacity.
"""

import asyncio
import logging
from typing import Type, Tuple

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def retry_on_k8s_error(
    max_attempts: int = 3,
    wait_min: float = 1,
    wait_max: float = 5,
    exceptions: Tuple[Type[Exception], ...] = (
        asyncio.TimeoutError,
        TimeoutError,
        ConnectionError,
    )
):
    """Retry decorator for cluster retrieval calls

    Works for both sync and async callables (tenacity picks the right
    wrapper).

    Args:
        max_attempts: attempts before giving up (default 3)
        wait_min: minimum backoff in seconds
        wait_max: maximum backoff in seconds
        exceptions: exception types worth retrying

    Example:
        @retry_on_k8s_error(max_attempts=5)
        async def list_pods(self):
            ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=wait_min, max=wait_max),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
