"""
Bounded retry for transient I/O.

Only errors flagged ``retryable`` (registry unreachable, token endpoint
down, gateway 5xx/timeout) are retried; everything else is raised on the
first occurrence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from hcxnet.protocol.errors import HCXError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, HCXError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes:
        max_retries: Retries after the first attempt (0 = single attempt)
        base_delay: Multiplier for exponential backoff, in seconds
        max_delay: Upper bound for a single backoff sleep
    """

    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0

    @classmethod
    def none(cls) -> "RetryPolicy":
        return cls(max_retries=0, base_delay=0.0, max_delay=0.0)

    def call(self, fn: Callable[[], T]) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception(is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(fn)
