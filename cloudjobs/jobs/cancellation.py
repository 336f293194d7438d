"""
Job cancellation and cleanup logic for Cloud Run jobs.
"""
from __future__ import annotations

import asyncio

import structlog
from google.api_core import exceptions as core_exceptions

from cloudjobs.jobs.client import RemoteJobService
from cloudjobs.jobs.types import CancellationResult, ErrorCause, Outcome

logger = structlog.get_logger(__name__)


class ExecutionCanceller:
    """Requests cancellation of executions and deletion of job definitions.

    Both operations treat an already-absent resource as success.
    """

    def __init__(self, service: RemoteJobService):
        self._service = service

    async def cancel(self, execution_name: str) -> CancellationResult:
        """Cancel a job execution.

        Args:
            execution_name: Full execution name (projects/.../executions/...).

        Returns:
            CancellationResult with ``accepted`` True if the provider took the
            request or no longer knows the execution. The execution may still
            be running when this returns.
        """
        try:
            operation = await asyncio.to_thread(self._service.cancel_execution, execution_name)
        except core_exceptions.NotFound as e:
            logger.info(
                "execution_already_gone",
                execution_name=execution_name,
                error=str(e),
            )
            return CancellationResult(
                execution_name=execution_name,
                accepted=True,
                not_found=True,
                error=ErrorCause.from_exception("cancel_execution", e),
            )
        except Exception as e:
            logger.error(
                "failed_to_cancel_execution",
                execution_name=execution_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CancellationResult(
                execution_name=execution_name,
                accepted=False,
                error=ErrorCause.from_exception("cancel_execution", e),
            )

        logger.info(
            "execution_cancellation_requested",
            execution_name=execution_name,
            operation_name=getattr(operation, "name", None),
        )
        return CancellationResult(execution_name=execution_name, accepted=True)

    async def delete_job(self, job_name: str) -> Outcome[bool]:
        """Delete a job definition; an already-deleted job counts as deleted."""
        try:
            await asyncio.to_thread(self._service.delete_job, job_name)
        except core_exceptions.NotFound:
            logger.info("job_already_deleted", job_name=job_name)
            return Outcome.success(True)
        except Exception as e:
            logger.error(
                "failed_to_delete_job",
                job_name=job_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("delete_job", e), value=False)

        logger.info("job_deleted", job_name=job_name)
        return Outcome.success(True)
