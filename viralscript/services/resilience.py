"""
Resilience Wrapper - bounded retry with exponential backoff.

This is the only place in the system that retries. Policy defaults:
3 attempts total, 2s base delay doubling per retry (2s, 4s), capped at 8s.
Only rate-limit / overload / server errors are retried. Anything else
propagates on first occurrence, and exhausting retries re-raises the last
error unchanged.

Usage:
    result = await call_with_retry(
        lambda: gateway.invoke(instruction, schema, sampling),
        RetryPolicy(),
        operation_name="analyze_script",
        cancel_token=cancel_event,
    )
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..core.config import Config
from ..core.exceptions import (
    REQUEST_TIMEOUT_STATUS,
    OperationCancelled,
    TransportError,
    ViralScriptError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({429, 500, 503})

# Message signatures of rate-limit, quota, overload and server errors
_RETRYABLE_MESSAGE = re.compile(
    r"\b(429|500|503)\b|resource_exhausted|quota|rate[ _-]?limit|overloaded|internal server error|server error",
    re.IGNORECASE,
)


def is_retryable_error(error: BaseException) -> bool:
    """
    Classify an error as transient.

    Retryable:
    - TransportError (or any error with a `status`/`code`) of 429, 500 or 503
    - messages matching rate-limit/quota/overloaded/server-error signatures
    - per-attempt timeouts (TimeoutError, or TransportError with the timeout status)

    Never retryable: the core's own typed failures other than TransportError
    (missing credential, malformed response, invalid intent, refusal,
    cancellation).
    """
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return True
    if isinstance(error, ViralScriptError) and not isinstance(error, TransportError):
        return False

    status = getattr(error, "status", None)
    if not isinstance(status, int):
        status = getattr(error, "code", None)
    if isinstance(status, int) and (status in RETRYABLE_STATUSES or status == REQUEST_TIMEOUT_STATUS):
        return True

    message = getattr(error, "message", None) or str(error)
    return bool(_RETRYABLE_MESSAGE.search(message))


@dataclass(frozen=True)
class RetryPolicy:
    """
    Explicit retry policy.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Seconds before the first retry; doubles each retry
        max_delay: Ceiling on any single backoff delay
        jitter: Extra random delay in [0, jitter] seconds added to each wait
        retryable: Predicate deciding whether an error is transient
    """
    max_attempts: int = Config.RETRY_MAX_ATTEMPTS
    base_delay: float = Config.RETRY_BASE_DELAY_SECONDS
    max_delay: float = Config.RETRY_MAX_DELAY_SECONDS
    jitter: float = 0.0
    retryable: Callable[[BaseException], bool] = field(default=is_retryable_error)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def wait_strategy(self):
        wait = wait_exponential(multiplier=self.base_delay, exp_base=2, max=self.max_delay)
        if self.jitter > 0:
            wait = wait + wait_random(0, self.jitter)
        return wait


def _log_retry(operation_name: str):
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        status = getattr(error, "status", "Quota/Server")
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"{operation_name} attempt {retry_state.attempt_number} failed ({status}). "
            f"Retrying in {delay:.1f}s..."
        )
    return before_sleep


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    operation_name: str = "model call",
    cancel_token: Optional[asyncio.Event] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run `operation` under the retry policy.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        policy: Retry policy (defaults from Config)
        operation_name: Label for logs
        cancel_token: When set, no further attempt or backoff sleep starts
        sleep: Async sleep used for backoff (injectable for tests)

    Returns:
        The first successful result

    Raises:
        OperationCancelled: If `cancel_token` is set before an attempt or a sleep
        Exception: The original error, on a non-retryable failure or when
            attempts are exhausted
    """
    policy = policy or RetryPolicy()
    attempts_made = 0

    def _check_cancelled() -> None:
        if cancel_token is not None and cancel_token.is_set():
            logger.info(f"{operation_name} cancelled after {attempts_made} attempt(s)")
            raise OperationCancelled(attempts_made)

    async def _attempt() -> T:
        nonlocal attempts_made
        _check_cancelled()
        attempts_made += 1
        return await operation()

    async def _sleep(seconds: float) -> None:
        _check_cancelled()
        await sleep(seconds)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=policy.wait_strategy(),
        retry=retry_if_exception(policy.retryable),
        sleep=_sleep,
        before_sleep=_log_retry(operation_name),
        reraise=True,
    )
    return await retrying(_attempt)
