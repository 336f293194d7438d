"""
Top-level Cloud Run job workflow: launch every job, then cancel whatever is still active.
"""
from __future__ import annotations

import structlog

from cloudjobs.jobs.cancellation import ExecutionCanceller
from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.launcher import ExecutionLauncher
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.types import LaunchMode, RunReport, Scope

logger = structlog.get_logger(__name__)


class JobOrchestrator:
    """Runs the launch/monitor/cancel sequence over every job in a scope.

    Jobs are handled one at a time in catalog order and each phase finishes for
    all jobs before the next phase starts. A failure on one job is logged and
    the loop moves on.
    """

    def __init__(
        self,
        catalog: JobCatalog,
        launcher: ExecutionLauncher,
        monitor: ExecutionMonitor,
        canceller: ExecutionCanceller,
    ):
        self._catalog = catalog
        self._launcher = launcher
        self._monitor = monitor
        self._canceller = canceller

    @property
    def monitor(self) -> ExecutionMonitor:
        return self._monitor

    async def run_all(self, scope: Scope) -> RunReport:
        report = RunReport(scope=scope)
        logger.info("orchestrator_run_started", project=scope.project, region=scope.region)

        listing = await self._catalog.list_jobs(scope)
        report.listing_failed = not listing.ok
        report.jobs = list(listing.value or [])
        if not report.jobs:
            logger.info("no_jobs_found", parent=scope.parent, listing_failed=report.listing_failed)
            return report

        for job_name in report.jobs:
            logger.info("launching_job", job_name=job_name, mode=LaunchMode.WAIT_UNTIL_DONE.value)
            outcome = await self._launcher.launch(job_name, LaunchMode.WAIT_UNTIL_DONE)
            if outcome.ok:
                report.waited_ok += 1
            else:
                report.waited_failed += 1

        for job_name in report.jobs:
            logger.info("launching_job", job_name=job_name, mode=LaunchMode.FIRE_AND_FORGET.value)
            outcome = await self._launcher.launch(job_name, LaunchMode.FIRE_AND_FORGET)
            if outcome.ok:
                report.fired_ok += 1
            else:
                report.fired_failed += 1

        for job_name in report.jobs:
            active = await self._monitor.list_active_executions(job_name)
            if not active.ok:
                report.monitor_failed += 1
            for execution_name in active.value or []:
                logger.info("cancelling_execution", job_name=job_name, execution_name=execution_name)
                result = await self._canceller.cancel(execution_name)
                if result.accepted:
                    report.cancelled += 1
                else:
                    report.cancel_failed += 1

        logger.info("orchestrator_run_finished", **report.as_log_fields())
        return report
