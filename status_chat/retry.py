"""Retry policy with linear backoff"""

from dataclasses import dataclass
from typing import FrozenSet

import httpx

from .config import BACKOFF_STEP, MAX_ATTEMPTS, MUTATING_OPERATIONS, RETRYABLE_STATUSES
from .exceptions import (
    AttemptTimeoutError,
    HttpStatusError,
    NetworkError,
    OpaqueResponseError,
    StatusChatError,
)
from .models import ErrorKind, Outcome


@dataclass(frozen=True)
class RetryPolicy:
    """
    Per-strategy retry policy.

    Args:
        max_attempts: Attempts per strategy, including the first one
        backoff_step: Seconds to wait per failed attempt number
        retryable_statuses: HTTP statuses treated as transient
        retry_mutating: Whether mutating operations get retried at all
    """

    max_attempts: int = MAX_ATTEMPTS
    backoff_step: float = BACKOFF_STEP
    retryable_statuses: FrozenSet[int] = RETRYABLE_STATUSES
    retry_mutating: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_step < 0:
            raise ValueError(f"backoff_step must not be negative, got {self.backoff_step}")

    def attempts_for(self, operation: str) -> int:
        """Attempt ceiling for one strategy handling `operation`"""
        if not self.retry_mutating and operation in MUTATING_OPERATIONS:
            return 1
        return self.max_attempts

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after `attempt` failed, before the next one"""
        return attempt * self.backoff_step

    def is_retryable_status(self, status: int) -> bool:
        return status in self.retryable_statuses


def error_kind_of(error: Exception) -> ErrorKind:
    """Map any exception raised during an attempt to an error kind"""
    if isinstance(error, StatusChatError):
        return error.kind
    if isinstance(error, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    return ErrorKind.NETWORK_ERROR


def classify_error(error: Exception, policy: RetryPolicy = RetryPolicy()) -> Outcome:
    """Classify error for appropriate handling"""
    if isinstance(error, OpaqueResponseError):
        return Outcome.INCONCLUSIVE
    elif isinstance(error, (AttemptTimeoutError, NetworkError)):
        return Outcome.TRANSIENT_FAILURE
    elif isinstance(error, HttpStatusError):
        if policy.is_retryable_status(error.http_status):
            return Outcome.TRANSIENT_FAILURE
        return Outcome.TERMINAL_FAILURE
    elif isinstance(error, StatusChatError):
        # Relay application errors and malformed payloads
        return Outcome.TERMINAL_FAILURE
    elif isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return Outcome.TRANSIENT_FAILURE
    else:
        return Outcome.TERMINAL_FAILURE
