"""
Retry with Exponential Backoff and Jitter.

retry_with_backoff() runs an async operation up to ``attempts`` times.
After failure ``i`` (0-based) it waits ``base_delay * 2**i`` plus a uniform
jitter in ``[0, jitter]`` seconds. The last failure is re-raised unchanged
and no wait follows it.

Defaults used by the gateway:
    - translation providers: 3 attempts, 0.3 s base
    - speech providers: 3 attempts, 0.4 s base

Example:
    result = await retry_with_backoff(
        lambda: client.post(url, json=payload),
        attempts=3,
        base_delay=0.3,
    )
"""
from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from transvox.core.errors import is_retryable
from transvox.core.logging import get_logger, verbose

_LOG = get_logger("transvox.retry")

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    sleep_s = retry_state.next_action.sleep if retry_state.next_action else 0.0
    verbose(
        _LOG,
        "retry",
        attempt=retry_state.attempt_number,
        error_type=type(exc).__name__ if exc else None,
        error=str(exc)[:200] if exc else None,
        seconds=round(sleep_s, 3),
    )


def build_retrying(
    attempts: int = 3,
    base_delay: float = 0.3,
    jitter: float = 0.2,
    retry_on: Callable[[BaseException], bool] = is_retryable,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> AsyncRetrying:
    """
    Build the tenacity controller behind retry_with_backoff().

    ``wait_exponential(multiplier=base_delay)`` yields ``base_delay * 2**(n-1)``
    after attempt ``n``, which is ``base_delay * 2**i`` for 0-based ``i``.
    """
    kwargs = dict(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=base_delay, exp_base=2, min=0) + wait_random(0, jitter),
        retry=retry_if_exception(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )
    if sleep is not None:
        kwargs["sleep"] = sleep
    return AsyncRetrying(**kwargs)


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 0.3,
    jitter: float = 0.2,
    retry_on: Callable[[BaseException], bool] = is_retryable,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Invoke ``fn`` until it succeeds or ``attempts`` calls have failed.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        attempts: Maximum number of calls.
        base_delay: Delay in seconds after the first failure.
        jitter: Upper bound of the random extra delay.
        retry_on: Predicate; exceptions it rejects propagate immediately.
        sleep: Async sleep override (tests pass a recorder).

    Returns:
        The first successful result.

    Raises:
        The last exception raised by ``fn``.
    """
    retrying = build_retrying(attempts, base_delay, jitter, retry_on, sleep)
    # fn is a plain factory; each attempt awaits the coroutine it returns.
    async for attempt in retrying:
        with attempt:
            return await fn()
    raise RuntimeError("retry loop exited without a result")
