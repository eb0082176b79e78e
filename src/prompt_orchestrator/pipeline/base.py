"""Base protocol for phase handlers."""

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, TypeVar

from prompt_orchestrator.core.exceptions import PromptOrchestratorError
from prompt_orchestrator.core.types import Result

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import Recorder
    from prompt_orchestrator.core.types import OutcomeRecord

log = logging.getLogger(__name__)

# Contravariant input (handlers can accept supertypes), invariant output
T_In = TypeVar("T_In", contravariant=True)
T_Out = TypeVar("T_Out")
T_Error = TypeVar("T_Error", bound=PromptOrchestratorError)


class BaseAsyncHandler(Protocol[T_In, T_Out, T_Error]):
    """Protocol for asynchronous phase handlers.

    Each handler turns one request state into the next, which keeps every
    phase independently testable.
    """

    async def handle(self, request: T_In) -> Result[T_Out, T_Error]:
        """Process a request state.

        Args:
            request: The state produced by the previous phase.

        Returns:
            A Result holding either the next request state or an error.
        """
        ...



def caller_cancelled() -> bool:
    """True when cancellation was requested on the running task itself.

    A collaborator can raise `asyncio.CancelledError` on its own, for example
    by awaiting an inner task that was cancelled. Only a pending request on
    the current task means the caller asked to stop.
    """
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


async def record_best_effort(
    recorder: "Recorder", entry: "OutcomeRecord", *, logger: logging.Logger = log
) -> bool:
    """Hand ``entry`` to ``recorder``; failures are logged and reported as False."""
    try:
        await recorder.record(entry)
    except asyncio.CancelledError:
        if caller_cancelled():
            raise
        logger.warning("Recording %s outcome was cancelled by the recorder", entry.kind)
        return False
    except Exception as e:
        logger.warning("Recording %s outcome failed: %s", entry.kind, e, exc_info=True)
        return False
    return True
