"""
Job and execution enumeration for a scope.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Iterable, TypeVar

import structlog

from cloudjobs.jobs.client import RemoteJobService
from cloudjobs.jobs.types import ErrorCause, Execution, JobDefinition, Outcome, Scope

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _drain(listing: Callable[[], Iterable[T]]) -> list[T]:
    """Read every page of a listing; any page failure propagates."""
    return list(listing())


class JobCatalog:
    """Stateless reader over a RemoteJobService.

    Every call re-reads from the provider. A listing that fails on any page
    yields an empty value, never a partial one; the failure is carried on the
    outcome's ``error``.
    """

    def __init__(self, service: RemoteJobService):
        self._service = service

    async def list_job_definitions(self, scope: Scope) -> Outcome[list[JobDefinition]]:
        try:
            names = await asyncio.to_thread(_drain, lambda: self._service.list_jobs(scope))
        except Exception as e:
            logger.error(
                "list_jobs_failed",
                project=scope.project,
                region=scope.region,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("list_jobs", e), value=[])

        logger.debug("jobs_listed", parent=scope.parent, job_count=len(names))
        return Outcome.success([JobDefinition(name=name, scope=scope) for name in names])

    async def list_jobs(self, scope: Scope) -> Outcome[list[str]]:
        """Job names in listing order."""
        outcome = await self.list_job_definitions(scope)
        names = [job.name for job in outcome.value or []]
        return Outcome(value=names, error=outcome.error)

    async def list_active_executions(self, job_name: str) -> Outcome[list[Execution]]:
        try:
            executions = await asyncio.to_thread(
                _drain, lambda: self._service.list_executions(job_name)
            )
        except Exception as e:
            logger.error(
                "list_executions_failed",
                job_name=job_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("list_executions", e), value=[])

        active = [execution for execution in executions if execution.is_active]
        logger.debug(
            "executions_listed",
            job_name=job_name,
            execution_count=len(executions),
            active_count=len(active),
        )
        return Outcome.success(active)
