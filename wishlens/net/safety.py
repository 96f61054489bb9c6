"""Retry, timeout and failure classification for calls to flaky endpoints.

Every call to a remote function goes through `safe_call`, which never raises
for call failures: it returns a `CallEnvelope` holding either the data or a
user-facing message plus the failure category.
"""

import asyncio
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Generic, Protocol, TypeAlias, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from wishlens.constants import (
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    RETRY_JITTER_RATIO,
    RETRY_MAX_DELAY,
)
from wishlens.errors import AuthRequiredError
from wishlens.logging import get_logger

T = TypeVar("T")

SleepFn: TypeAlias = Callable[[float], Awaitable[None]]

_logger = get_logger(__name__)


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = MAX_RETRIES
    base_delay: float = RETRY_BASE_DELAY
    max_delay: float = RETRY_MAX_DELAY
    timeout: float = REQUEST_TIMEOUT


class ErrorCategory(StrEnum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.TIMEOUT: "The request took too long. Please try again.",
    ErrorCategory.NETWORK: "Network error. Please check your connection and try again.",
    ErrorCategory.AUTH: "Authentication error. Please sign in again.",
    ErrorCategory.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    ErrorCategory.SERVER: "Server error. Please try again in a moment.",
    ErrorCategory.UNKNOWN: "Something went wrong. Please try again.",
}


@dataclass(frozen=True)
class CallMeta:
    request_id: str
    retry_count: int
    timestamp: str
    partial: bool = False
    confidence: float | None = None


@dataclass(frozen=True)
class CallEnvelope(Generic[T]):
    data: T | None
    error: str | None
    meta: CallMeta
    category: ErrorCategory | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def backoff_delay(attempt: int, config: RetryConfig, rng: RandomSource) -> float:
    """Delay before retry number `attempt + 1`; jitter is only ever added."""
    delay = min(config.base_delay * 2**attempt, config.max_delay)
    return delay + rng.random() * RETRY_JITTER_RATIO * delay


def _status_code(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, AuthRequiredError | ValueError):
        return False
    status = _status_code(exc)
    if status is not None:
        return status in {408, 429} or status >= 500
    return True


def categorize(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, AuthRequiredError):
        return ErrorCategory.AUTH
    if isinstance(exc, TimeoutError | httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    status = _status_code(exc)
    if status in (401, 403):
        return ErrorCategory.AUTH
    if status == 429:
        return ErrorCategory.RATE_LIMITED
    if status is not None and status >= 500:
        return ErrorCategory.SERVER

    if isinstance(exc, httpx.TransportError):
        return ErrorCategory.NETWORK
    return ErrorCategory.UNKNOWN


def _confidence_of(data) -> float | None:
    if isinstance(data, dict):
        value = data.get("confidence")
        return float(value) if isinstance(value, int | float) else None
    return None


def _new_request_id(name: str) -> str:
    return f"{name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


async def safe_call(
    name: str,
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    rng: RandomSource | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> CallEnvelope[T]:
    config = config or RetryConfig()
    rng = rng or random.Random()
    request_id = _new_request_id(name)
    attempts = 0

    async def _attempt() -> T:
        nonlocal attempts
        attempts += 1
        return await asyncio.wait_for(fn(), timeout=config.timeout)

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number - 1, config, rng)

    def _log_retry(retry_state: RetryCallState) -> None:
        _logger.warning(
            "%s failed (attempt %d/%d), retrying in %.2fs: %s",
            name,
            retry_state.attempt_number,
            config.max_retries + 1,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
            retry_state.outcome.exception() if retry_state.outcome else None,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.max_retries + 1),
        wait=_wait,
        retry=retry_if_exception(is_retryable),
        reraise=True,
        before_sleep=_log_retry,
        sleep=sleep,
    )

    _logger.debug("Starting call", function=name, request_id=request_id)
    try:
        data = await retrying(_attempt)
    except Exception as e:
        category = categorize(e)
        _logger.warning(
            "Call failed",
            function=name,
            request_id=request_id,
            attempts=attempts,
            category=str(category),
            error=str(e) or type(e).__name__,
        )
        return CallEnvelope(
            data=None,
            error=USER_MESSAGES[category],
            category=category,
            meta=CallMeta(
                request_id=request_id,
                retry_count=attempts - 1,
                timestamp=datetime.now(UTC).isoformat(),
            ),
        )

    _logger.debug("Call succeeded", function=name, request_id=request_id, attempt=attempts)
    return CallEnvelope(
        data=data,
        error=None,
        meta=CallMeta(
            request_id=request_id,
            retry_count=attempts - 1,
            timestamp=datetime.now(UTC).isoformat(),
            confidence=_confidence_of(data),
        ),
    )
