"""
Exponential backoff with jitter around calls to generative-model providers.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from .errors import ExternalServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 503})
RETRYABLE_MESSAGE_MARKERS = ("resource_exhausted", "resource exhausted", "overloaded")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff settings for transient provider failures.

    Attributes
    ----------
    max_retries:
        Additional attempts made after the first failure.
    initial_backoff_seconds:
        Wait before the first retry; doubled on each subsequent retry.
    max_jitter_seconds:
        Upper bound of the uniform random delay added to each wait.
    """

    max_retries: int = 4
    initial_backoff_seconds: float = 2.0
    max_jitter_seconds: float = 0.5

    def backoff_for(self, attempt: int, jitter: float = 0.0) -> float:
        return self.initial_backoff_seconds * (2**attempt) + jitter


DEFAULT_RETRY_POLICY = RetryPolicy()


def extract_status_code(exc: BaseException) -> int | None:
    """
    Best-effort lookup of the HTTP status carried by a provider exception.

    LiteLLM exceptions expose ``status_code``, Replicate errors expose ``status``,
    and ``requests`` errors carry a ``response``.
    """
    for attribute in ("status_code", "status"):
        value = getattr(exc, attribute, None)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)

    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ExternalServiceError):
        return exc.retryable

    if extract_status_code(exc) in RETRYABLE_STATUS_CODES:
        return True

    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)


def to_external_error(exc: BaseException, *, label: str) -> ExternalServiceError:
    """Wrap an arbitrary provider exception into the gateway's error contract."""
    if isinstance(exc, ExternalServiceError):
        return exc
    return ExternalServiceError(
        f"{label} failed: {exc}",
        status=extract_status_code(exc),
        retryable=is_retryable(exc),
    )


def call_with_retry(
    operation: Callable[[], T],
    *,
    label: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], Any] = time.sleep,
    jitter: Callable[[float, float], float] = random.uniform,
) -> T:
    """
    Invoke ``operation`` and retry transient failures with exponential backoff.

    Retryable failures (HTTP 429/503, "overloaded" or "resource exhausted"
    signals) are retried up to ``policy.max_retries`` times. Anything else is
    raised immediately as an :class:`ExternalServiceError`.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as exc:
            error = to_external_error(exc, label=label)
            if not error.retryable or attempt >= policy.max_retries:
                if error is exc:
                    raise
                raise error from exc

            wait_seconds = policy.backoff_for(attempt, jitter(0.0, policy.max_jitter_seconds))
            logger.warning(
                "[%s] Retryable error (attempt %d/%d), waiting %.2fs: %s",
                label,
                attempt + 1,
                policy.max_retries,
                wait_seconds,
                str(exc)[:120],
            )
            sleep(wait_seconds)
            attempt += 1
