"""
Outbound call runner: bounded retry, failure classification, CallResult.
Used only at the boundary with external collaborators (processor, stream provider, CMS);
core decision logic never retries.
"""
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

import httpx
import pybreaker

from ppvgate.utils.metrics import outbound_request_duration_seconds, outbound_requests_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailureType(str, Enum):
    TRANSPORT_TRANSIENT = "transport_transient"  # timeout, connection error, 429, 5xx
    CLIENT_NON_RETRIABLE = "client_non_retriable"  # 4xx except 429
    CIRCUIT_OPEN = "circuit_open"
    UNKNOWN = "unknown"


class OutboundError(Exception):
    """Raised by adapters; http_status drives classification."""

    def __init__(self, message: str, http_status: int | None = None, retry_after: float | None = None):
        super().__init__(message)
        self.http_status = http_status
        self.retry_after = retry_after


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    max_backoff_seconds: float = 8.0

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        return cls(
            max_attempts=getattr(settings, "outbound_retry_max_attempts", 3),
            backoff_seconds=getattr(settings, "outbound_retry_backoff_seconds", 0.5),
        )

    def delay_for(self, attempt: int) -> float:
        """Exponential backoff with jitter; attempt is 1-based."""
        base = min(self.backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)
        return base + random.uniform(0, base / 2 if base else 0)


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Explicit outcome of an outbound call: value or failure classification."""

    value: T | None = None
    failure: FailureType | None = None
    error: str | None = None
    http_status: int | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T, attempts: int) -> "CallResult[T]":
        return cls(value=value, attempts=attempts)


def classify_failure(exc: BaseException) -> tuple[FailureType, int | None, bool]:
    """Return (failure_type, http_status, retry_allowed)."""
    if isinstance(exc, pybreaker.CircuitBreakerError):
        return (FailureType.CIRCUIT_OPEN, None, False)
    http_status = getattr(exc, "http_status", None)
    if isinstance(exc, httpx.HTTPStatusError):
        http_status = exc.response.status_code
    if http_status is not None:
        if http_status == 429 or 500 <= http_status < 600:
            return (FailureType.TRANSPORT_TRANSIENT, http_status, True)
        if 400 <= http_status < 500:
            return (FailureType.CLIENT_NON_RETRIABLE, http_status, False)
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError, TimeoutError, ConnectionError)):
        return (FailureType.TRANSPORT_TRANSIENT, None, True)
    if isinstance(exc, OutboundError):
        # No status: network-level failure reported by an SDK
        return (FailureType.TRANSPORT_TRANSIENT, None, True)
    return (FailureType.UNKNOWN, None, False)


def call_with_retry(
    target: str,
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    breaker: pybreaker.CircuitBreaker | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CallResult[T]:
    """
    Run func with at most policy.max_attempts attempts. Never raises for
    classified failures; the caller inspects CallResult.
    """
    start = time.monotonic()
    attempt = 0
    result: CallResult[T]
    while True:
        attempt += 1
        try:
            value = breaker.call(func) if breaker is not None else func()
            result = CallResult.success(value, attempt)
            break
        except Exception as exc:  # classified below; unknown errors are not retried
            failure, http_status, retry_allowed = classify_failure(exc)
            logger.warning(
                "outbound_call_failed",
                extra={
                    "breaker_name": target,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "error": f"{type(exc).__name__}: {exc}",
                    "kind": failure.value,
                },
            )
            if not retry_allowed or attempt >= policy.max_attempts:
                result = CallResult(
                    failure=failure,
                    error=str(exc),
                    http_status=http_status,
                    attempts=attempt,
                )
                break
            delay = policy.delay_for(attempt)
            retry_after = getattr(exc, "retry_after", None)
            if http_status == 429 and retry_after:
                delay = max(delay, float(retry_after))
            logger.info(
                "outbound_retry_scheduled",
                extra={
                    "breaker_name": target,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": round(delay, 2),
                },
            )
            sleep(delay)

    outbound_requests_total.labels(target=target, status="success" if result.ok else "error").inc()
    outbound_request_duration_seconds.labels(target=target).observe(time.monotonic() - start)
    return result
