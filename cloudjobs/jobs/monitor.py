"""
Active execution lookup for Cloud Run jobs.
"""
from __future__ import annotations

import asyncio

import structlog

from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.types import Outcome

logger = structlog.get_logger(__name__)


class ExecutionMonitor:
    """Reports which executions of a job are still active.

    There is no push channel: every answer is a fresh snapshot from the catalog.

    Args:
        catalog: Catalog the snapshots are read from.
        poll_interval: Default seconds between snapshots in ``wait_until_idle``.
        max_polls: Default snapshot bound for ``wait_until_idle``.
    """

    def __init__(self, catalog: JobCatalog, poll_interval: float = 10.0, max_polls: int = 30):
        if max_polls < 1:
            raise ValueError("max_polls must be at least 1")
        self._catalog = catalog
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    async def list_active_executions(self, job_name: str) -> Outcome[list[str]]:
        """Names of the executions of ``job_name`` that are reconciling or running tasks."""
        outcome = await self._catalog.list_active_executions(job_name)
        names = [execution.name for execution in outcome.value or []]
        return Outcome(value=names, error=outcome.error)

    async def wait_until_idle(
        self,
        job_name: str,
        poll_interval: float | None = None,
        max_polls: int | None = None,
    ) -> Outcome[bool]:
        """Poll until a snapshot shows no active executions, at most ``max_polls`` times.

        Arguments left as None fall back to the values given at construction.

        Returns:
            Outcome(True) once idle, Outcome(False) when the bound is exhausted.
            A failed snapshot ends the wait with that failure.
        """
        if poll_interval is None:
            poll_interval = self.poll_interval
        if max_polls is None:
            max_polls = self.max_polls
        if max_polls < 1:
            raise ValueError("max_polls must be at least 1")

        for attempt in range(1, max_polls + 1):
            outcome = await self.list_active_executions(job_name)
            if not outcome.ok:
                return Outcome.failure(outcome.error, value=False)
            if not outcome.value:
                logger.info("job_idle", job_name=job_name, polls=attempt)
                return Outcome.success(True)

            logger.debug(
                "job_still_active",
                job_name=job_name,
                active_executions=outcome.value,
                poll=attempt,
            )
            if attempt < max_polls:
                await asyncio.sleep(poll_interval)

        logger.warning("job_idle_wait_exhausted", job_name=job_name, max_polls=max_polls)
        return Outcome.success(False)
