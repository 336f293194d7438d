"""
CLI entry points for the Cloud Run orchestrator, the Batch workflow and the storage demo.

All commands exit 0 once their arguments parse, whatever happened remotely;
failures are reported in the logs only.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence

import structlog

from cloudjobs.config import Settings, get_settings
from cloudjobs.jobs.batch import BatchJobService, BatchWorkflow
from cloudjobs.jobs.cancellation import ExecutionCanceller
from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.client import CloudRunJobService
from cloudjobs.jobs.launcher import ExecutionLauncher
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.orchestrator import JobOrchestrator
from cloudjobs.jobs.types import BatchJobConfig, Scope
from cloudjobs.logging import configure_structlog, setup_logging
from cloudjobs.storage import ContainerRegistry, ObjectStore, build_storage_client, run_storage_demo

logger = structlog.get_logger(__name__)


def _scope_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument("project", help="GCP project id")
    parser.add_argument("region", help="GCP region, e.g. europe-west1")
    return parser


def _init_logging(settings: Settings) -> None:
    configure_structlog()
    setup_logging(settings)


def build_orchestrator(settings: Settings) -> JobOrchestrator:
    service = CloudRunJobService.from_settings(settings)
    catalog = JobCatalog(service)
    return JobOrchestrator(
        catalog=catalog,
        launcher=ExecutionLauncher(service, poll_interval=settings.OPERATION_POLL_INTERVAL_SECONDS),
        monitor=ExecutionMonitor(
            catalog,
            poll_interval=settings.IDLE_POLL_INTERVAL_SECONDS,
            max_polls=settings.IDLE_MAX_POLLS,
        ),
        canceller=ExecutionCanceller(service),
    )


def build_batch_workflow(settings: Settings, poll_delay_seconds: float | None = None) -> BatchWorkflow:
    job_config = BatchJobConfig(
        script=settings.BATCH_SCRIPT,
        task_count=settings.BATCH_TASK_COUNT,
        parallelism=settings.BATCH_PARALLELISM,
        machine_type=settings.BATCH_MACHINE_TYPE,
        max_run_duration_seconds=settings.BATCH_MAX_RUN_DURATION_SECONDS,
        labels={"app": settings.APP_NAME, "env": settings.environment},
    )
    if poll_delay_seconds is None:
        poll_delay_seconds = settings.POLL_DELAY_SECONDS
    return BatchWorkflow(
        BatchJobService.from_settings(settings),
        job_config,
        poll_delay_seconds=poll_delay_seconds,
    )


def main_run(argv: Sequence[str] | None = None) -> int:
    """Launch every Cloud Run job in a scope, then cancel what is still active."""
    args = _scope_parser(
        "cloudjobs-run", "Launch and clean up every Cloud Run job in a project/region."
    ).parse_args(argv)

    settings = get_settings()
    _init_logging(settings)
    scope = Scope(project=args.project, region=args.region)

    orchestrator = build_orchestrator(settings)
    asyncio.run(orchestrator.run_all(scope))
    return 0


def main_batch(argv: Sequence[str] | None = None) -> int:
    """Create a Batch job, wait a fixed delay, inspect it and delete it."""
    parser = _scope_parser(
        "cloudjobs-batch", "Create, inspect and delete a Cloud Batch job in a project/region."
    )
    parser.add_argument(
        "--poll-delay-seconds",
        type=float,
        default=None,
        help="Fixed wait between job creation and inspection (default: POLL_DELAY_SECONDS setting)",
    )
    args = parser.parse_args(argv)
    if args.poll_delay_seconds is not None and args.poll_delay_seconds < 0:
        parser.error("--poll-delay-seconds must not be negative")

    settings = get_settings()
    _init_logging(settings)
    scope = Scope(project=args.project, region=args.region)

    workflow = build_batch_workflow(settings, args.poll_delay_seconds)
    result = asyncio.run(workflow.run(scope))
    logger.info(
        "batch_workflow_finished",
        job_name=result.job_name,
        status=result.status.value,
        deleted=result.deleted,
        error_count=len(result.errors),
    )
    return 0


def main_storage(argv: Sequence[str] | None = None) -> int:
    """Run the storage demo against a freshly named bucket."""
    argparse.ArgumentParser(
        prog="cloudjobs-storage", description="Round-trip an object through a throwaway GCS bucket."
    ).parse_args(argv)

    settings = get_settings()
    _init_logging(settings)

    client = build_storage_client(settings)
    run_storage_demo(
        ContainerRegistry(client),
        ObjectStore(client),
        bucket_prefix=settings.STORAGE_BUCKET_PREFIX,
        location=settings.STORAGE_LOCATION,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main_run())
