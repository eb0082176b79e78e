"""Timeout-then-retry combinator for slow, fallible collaborator calls.

The first attempt races the call against a time budget; the losing call is
cancelled rather than left running. A failed or timed-out first attempt may
be retried exactly once with no time budget. Cancellation requested by the
caller propagates; a `CancelledError` raised by the call itself is an
ordinary failure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import dataclasses
import logging

from prompt_orchestrator.core.exceptions import CandidateError, CandidateTimeoutError
from prompt_orchestrator.core.types import Failure, Result, Success
from prompt_orchestrator.pipeline.base import caller_cancelled

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


@dataclasses.dataclass(frozen=True, slots=True)
class RetryOutcome[T]:
    """Result of `call_with_timeout_retry`.

    Attributes:
        result: Success with the call's value, or Failure with the last error.
        attempts: Number of times the factory was invoked (1 or 2).
        timed_out: True when the first attempt exceeded its budget.
    """

    result: Result[T, Exception]
    attempts: int
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return isinstance(self.result, Success)

    @property
    def retried(self) -> bool:
        return self.attempts > 1


async def call_with_timeout_retry[T](
    factory: Callable[[], Awaitable[T]],
    *,
    timeout_s: float | None,
    retry_on_failure: bool,
    label: str = "call",
    method: str | None = None,
) -> RetryOutcome[T]:
    """Run ``factory()`` under a time budget with at most one unbounded retry.

    Args:
        factory: Zero-argument callable returning a fresh awaitable per call.
        timeout_s: Budget for the first attempt in seconds; None disables it.
        retry_on_failure: Whether a failed or timed-out first attempt is
            retried once without a budget.
        label: Name used in log messages.
        method: Method identifier attached to timeout and cancellation errors.

    Returns:
        A `RetryOutcome`. Ordinary exceptions are captured in its result; an
        expired budget is reported as `CandidateTimeoutError`.

    Raises:
        asyncio.CancelledError: If the calling task is cancelled.
    """
    timed_out = False
    budget = asyncio.timeout(timeout_s)
    try:
        async with budget:
            value = await factory()
        return RetryOutcome(Success(value), attempts=1)
    except TimeoutError as e:
        if budget.expired():
            timed_out = True
            first_error: Exception = CandidateTimeoutError(
                f"{label} timed out after {timeout_s}s", method=method, attempts=1
            )
            first_error.__cause__ = e
            log.debug("%s timed out after %.3fs", label, timeout_s)
        else:
            first_error = e
            log.debug("%s raised its own timeout: %s", label, e)
    except asyncio.CancelledError:
        if caller_cancelled():
            raise
        first_error = _cancelled_error(label, method, attempts=1)
        log.debug("%s was cancelled from within", label)
    except Exception as e:
        first_error = e
        log.debug("%s failed on first attempt: %s", label, e)

    if not retry_on_failure:
        return RetryOutcome(Failure(first_error), attempts=1, timed_out=timed_out)

    try:
        value = await factory()
    except asyncio.CancelledError:
        if caller_cancelled():
            raise
        log.debug("%s was cancelled from within on retry", label)
        return RetryOutcome(
            Failure(_cancelled_error(label, method, attempts=MAX_ATTEMPTS)),
            attempts=MAX_ATTEMPTS,
            timed_out=timed_out,
        )
    except Exception as e:
        log.debug("%s failed on retry: %s", label, e)
        return RetryOutcome(Failure(e), attempts=MAX_ATTEMPTS, timed_out=timed_out)
    return RetryOutcome(Success(value), attempts=MAX_ATTEMPTS, timed_out=timed_out)


def _cancelled_error(label: str, method: str | None, *, attempts: int) -> CandidateError:
    return CandidateError(
        f"{label} was cancelled by the collaborator", method=method, attempts=attempts
    )
