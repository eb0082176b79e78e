"""Timeout-and-retry combinator behavior."""

import asyncio

import pytest

from prompt_orchestrator.core.exceptions import CandidateError, CandidateTimeoutError
from prompt_orchestrator.core.types import Failure, Success
from prompt_orchestrator.pipeline.resilience import MAX_ATTEMPTS, call_with_timeout_retry

pytestmark = pytest.mark.unit

INNER_CANCEL = object()


class ScriptedCall:
    """Factory whose n-th invocation follows the n-th step of ``steps``."""

    def __init__(self, *steps):
        self.steps = steps
        self.invocations = 0
        self.cancelled = 0

    def __call__(self):
        step = self.steps[min(self.invocations, len(self.steps) - 1)]
        self.invocations += 1
        return self._run(step)

    async def _run(self, step):
        if step is INNER_CANCEL:
            inner = asyncio.ensure_future(asyncio.sleep(10))
            inner.cancel()
            await inner
        if isinstance(step, tuple):
            seconds, value = step
            try:
                await asyncio.sleep(seconds)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
            return value
        if isinstance(step, Exception):
            raise step
        return step


@pytest.mark.asyncio
async def test_first_attempt_success_is_not_retried():
    call = ScriptedCall("ok")

    outcome = await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=True)

    assert outcome.result == Success("ok")
    assert outcome.attempts == 1
    assert outcome.ok and not outcome.retried
    assert call.invocations == 1


@pytest.mark.asyncio
async def test_failure_then_success_uses_retry_value():
    call = ScriptedCall(RuntimeError("flaky"), "second")

    outcome = await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=True)

    assert outcome.result == Success("second")
    assert outcome.attempts == MAX_ATTEMPTS
    assert outcome.retried
    assert not outcome.timed_out


@pytest.mark.asyncio
async def test_two_failures_report_the_last_error():
    first, second = RuntimeError("first"), ValueError("second")
    call = ScriptedCall(first, second)

    outcome = await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=True)

    assert isinstance(outcome.result, Failure)
    assert outcome.result.error is second
    assert call.invocations == 2


@pytest.mark.asyncio
async def test_no_retry_when_disabled():
    call = ScriptedCall(RuntimeError("boom"), "never")

    outcome = await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=False)

    assert not outcome.ok
    assert outcome.attempts == 1
    assert call.invocations == 1


@pytest.mark.asyncio
async def test_timeout_cancels_the_slow_attempt_and_retries_unbounded():
    # The retry takes longer than the first budget but has no budget of its own
    call = ScriptedCall((1.0, "late"), (0.1, "retried"))

    outcome = await call_with_timeout_retry(call, timeout_s=0.05, retry_on_failure=True)

    assert outcome.result == Success("retried")
    assert outcome.timed_out
    assert outcome.attempts == 2
    assert call.cancelled == 1


@pytest.mark.asyncio
async def test_timeout_without_retry_fails_with_candidate_timeout():
    call = ScriptedCall((1.0, "late"))

    outcome = await call_with_timeout_retry(
        call, timeout_s=0.01, retry_on_failure=False, method="api-expert"
    )

    assert isinstance(outcome.result, Failure)
    assert isinstance(outcome.result.error, CandidateTimeoutError)
    assert outcome.result.error.method == "api-expert"
    assert outcome.result.error.attempts == 1
    assert outcome.timed_out
    assert call.cancelled == 1


@pytest.mark.asyncio
async def test_never_invokes_factory_more_than_twice():
    call = ScriptedCall(RuntimeError("a"), RuntimeError("b"), "c")

    await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=True)

    assert call.invocations == MAX_ATTEMPTS


@pytest.mark.asyncio
async def test_none_timeout_disables_the_budget():
    call = ScriptedCall((0.02, "done"))

    outcome = await call_with_timeout_retry(call, timeout_s=None, retry_on_failure=False)

    assert outcome.result == Success("done")


@pytest.mark.asyncio
async def test_caller_cancellation_propagates():
    call = ScriptedCall((5.0, "never"))
    task = asyncio.create_task(
        call_with_timeout_retry(call, timeout_s=10.0, retry_on_failure=True)
    )
    await asyncio.sleep(0.01)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert call.invocations == 1


@pytest.mark.asyncio
async def test_own_timeout_error_is_not_reported_as_budget_expiry():
    own = TimeoutError("upstream deadline")
    call = ScriptedCall(own)

    outcome = await call_with_timeout_retry(call, timeout_s=5.0, retry_on_failure=False)

    assert outcome.result == Failure(own)
    assert not outcome.timed_out


@pytest.mark.asyncio
async def test_cancellation_raised_by_the_call_is_retried():
    call = ScriptedCall(INNER_CANCEL, "recovered")

    outcome = await call_with_timeout_retry(call, timeout_s=1.0, retry_on_failure=True)

    assert outcome.result == Success("recovered")
    assert outcome.attempts == MAX_ATTEMPTS
    assert not outcome.timed_out


@pytest.mark.asyncio
async def test_cancellation_raised_twice_by_the_call_is_a_failure():
    call = ScriptedCall(INNER_CANCEL, INNER_CANCEL)

    outcome = await call_with_timeout_retry(
        call, timeout_s=1.0, retry_on_failure=True, method="llm-coordinator"
    )

    assert isinstance(outcome.result, Failure)
    assert isinstance(outcome.result.error, CandidateError)
    assert outcome.result.error.method == "llm-coordinator"
    assert outcome.result.error.attempts == MAX_ATTEMPTS
    assert call.invocations == MAX_ATTEMPTS
