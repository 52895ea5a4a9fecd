"""Bounded fixed-interval retry.

Both blocking waits in skyforge (master discovery and kubeconfig fetch)
go through ``bounded_retry`` so the policy can be tested without a
provider or a network.

Example:
    from skyforge.retry import bounded_retry, on_exception_message

    config = bounded_retry(
        fetch,
        attempts=120,
        interval=2.0,
        on=on_exception_message("does not exist", "connection refused"),
    )
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias, TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from skyforge.core.exceptions import RetryExhaustedError

T = TypeVar("T")

# Type for the retry predicate
RetryPredicate: TypeAlias = Callable[[BaseException], bool]
Sleeper: TypeAlias = Callable[[float], None]


def _normalize(on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate) -> RetryPredicate:
    if isinstance(on, type) and issubclass(on, Exception):
        return lambda e: isinstance(e, on)
    if isinstance(on, tuple):
        return lambda e: isinstance(e, on)
    return on


def bounded_retry(
    fn: Callable[[], T],
    *,
    attempts: int,
    interval: float,
    on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate = Exception,
    sleep: Sleeper = time.sleep,
    description: str = "operation",
) -> T:
    """Call ``fn`` until it succeeds or the attempt budget is spent.

    Args:
        fn: Zero-argument callable to attempt.
        attempts: Maximum number of calls (including the first one).
        interval: Fixed delay in seconds between calls.
        on: When to retry. An exception class, a tuple of classes, or a
            predicate. Errors that don't match propagate immediately.
        sleep: Sleep function, injectable for tests.
        description: Used in log lines and in the exhaustion message.

    Returns:
        The first successful result of ``fn``.

    Raises:
        RetryExhaustedError: If every attempt failed with a retryable error.
            The last error is chained and available as ``last_error``.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    def _log_retry(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            f"{description}: attempt {state.attempt_number}/{attempts} failed "
            f"({exc}). Waiting {interval:.1f}s..."
        )

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_exception(_normalize(on)),
        sleep=sleep,
        before_sleep=_log_retry,
    )

    try:
        return retrying(fn)
    except RetryError as e:
        last = e.last_attempt.exception()
        raise RetryExhaustedError(
            f"{description} failed after {attempts} attempts: {last}",
            attempts=attempts,
            last_error=last,
        ) from last


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget and fixed interval for one kind of wait."""

    attempts: int
    interval: float
    sleep: Sleeper = time.sleep

    def run(
        self,
        fn: Callable[[], T],
        *,
        on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate = Exception,
        description: str = "operation",
    ) -> T:
        return bounded_retry(
            fn,
            attempts=self.attempts,
            interval=self.interval,
            on=on,
            sleep=self.sleep,
            description=description,
        )


# =============================================================================
# Common Predicates
# =============================================================================


def on_exception_message(*patterns: str, case_sensitive: bool = False) -> RetryPredicate:
    """Create a predicate that retries when exception message matches patterns.

    Example:
        bounded_retry(fetch, attempts=3, interval=1, on=on_exception_message("refused"))
    """

    def predicate(e: BaseException) -> bool:
        msg = str(e)
        if not case_sensitive:
            msg = msg.lower()
            return any(p.lower() in msg for p in patterns)
        return any(p in msg for p in patterns)

    return predicate


def on_exception_type(*types: type[BaseException]) -> RetryPredicate:
    def predicate(e: BaseException) -> bool:
        return isinstance(e, types)

    return predicate


def any_of(*predicates: RetryPredicate) -> RetryPredicate:
    """Combine predicates with OR logic (retry if ANY predicate matches)."""

    def combined(e: BaseException) -> bool:
        return any(p(e) for p in predicates)

    return combined
