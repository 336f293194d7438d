"""
Job launching for Cloud Run jobs, fire-and-forget or waiting for the execution to finish.
"""
from __future__ import annotations

import asyncio

import structlog

from cloudjobs.jobs.client import RemoteJobService
from cloudjobs.jobs.types import ErrorCause, LaunchMode, OperationHandle, Outcome

logger = structlog.get_logger(__name__)


def _execution_name(operation: OperationHandle) -> str | None:
    """Execution name from the operation metadata, when the provider reports one."""
    metadata = getattr(operation, "metadata", None)
    name = getattr(metadata, "name", None)
    return name or None


class ExecutionLauncher:
    """Starts job executions.

    Args:
        service: Provider adapter.
        poll_interval: Seconds between ``done()`` checks in WAIT_UNTIL_DONE mode.
    """

    def __init__(self, service: RemoteJobService, poll_interval: float = 5.0):
        self._service = service
        self._poll_interval = poll_interval

    async def launch(self, job_name: str, mode: LaunchMode) -> Outcome[str | None]:
        """Start one execution of ``job_name``.

        FIRE_AND_FORGET succeeds as soon as the start request is accepted; a
        later failure of the execution is not observed. WAIT_UNTIL_DONE blocks
        until the operation reports completion and succeeds only if it
        completed without error.

        Returns:
            Outcome whose value is the execution name (None if not reported).
            Errors are logged and returned, never raised.
        """
        try:
            operation = await asyncio.to_thread(self._service.run_job, job_name)
        except Exception as e:
            logger.error(
                "job_launch_failed",
                job_name=job_name,
                mode=mode.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("run_job", e))

        execution_name = _execution_name(operation)
        logger.info(
            "job_launched",
            job_name=job_name,
            mode=mode.value,
            execution_name=execution_name,
        )

        if mode is LaunchMode.FIRE_AND_FORGET:
            return Outcome.success(execution_name)

        try:
            polls = await self._wait_for_operation(operation)
            await asyncio.to_thread(operation.result)
        except Exception as e:
            logger.error(
                "job_execution_wait_failed",
                job_name=job_name,
                execution_name=execution_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(
                ErrorCause.from_exception("await_completion", e), value=execution_name
            )

        logger.info(
            "job_execution_completed",
            job_name=job_name,
            execution_name=execution_name,
            polls=polls,
        )
        return Outcome.success(execution_name)

    async def _wait_for_operation(self, operation: OperationHandle) -> int:
        """Poll ``operation.done()`` until it reports True; returns the number of polls."""
        polls = 0
        while True:
            polls += 1
            if await asyncio.to_thread(operation.done):
                return polls
            await asyncio.sleep(self._poll_interval)
