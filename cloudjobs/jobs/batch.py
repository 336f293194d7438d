"""
Cloud Batch job lifecycle: create a job, wait a fixed delay, inspect it, delete it.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Iterator

import structlog
from google.api_core import exceptions as core_exceptions

from cloudjobs.jobs.client import build_credentials
from cloudjobs.jobs.types import BatchJobConfig, ErrorCause, JobStatus, Outcome, Scope

if TYPE_CHECKING:
    from google.cloud.batch_v1 import BatchServiceClient

    from cloudjobs.config import Settings

logger = structlog.get_logger(__name__)

JOB_ID_PREFIX = "cloudjobs"


def map_batch_state(state_name: str) -> JobStatus:
    """Map a Batch ``JobStatus.State`` name to JobStatus."""
    status_mapping = {
        "STATE_UNSPECIFIED": JobStatus.UNKNOWN,
        "QUEUED": JobStatus.PENDING,
        "SCHEDULED": JobStatus.PENDING,
        "RUNNING": JobStatus.RUNNING,
        "SUCCEEDED": JobStatus.SUCCEEDED,
        "FAILED": JobStatus.FAILED,
        "CANCELLATION_IN_PROGRESS": JobStatus.RUNNING,
        "CANCELLED": JobStatus.CANCELLED,
        "DELETION_IN_PROGRESS": JobStatus.DELETING,
    }
    return status_mapping.get(state_name, JobStatus.UNKNOWN)


def new_job_id() -> str:
    """Random job id that satisfies Batch's ``[a-z][a-z0-9-]*`` naming rule."""
    return f"{JOB_ID_PREFIX}-{uuid.uuid4().hex[:12]}"


def build_batch_client(credentials=None) -> BatchServiceClient:
    from google.cloud import batch_v1

    client = batch_v1.BatchServiceClient(credentials=credentials)
    logger.debug("batch_client_initialized")
    return client


class BatchJobService:
    """Thin adapter over ``batch_v1.BatchServiceClient``."""

    def __init__(self, client: BatchServiceClient):
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "BatchJobService":
        return cls(build_batch_client(build_credentials(settings)))

    def create_job(self, scope: Scope, job_id: str, config: BatchJobConfig) -> str:
        from google.cloud import batch_v1

        runnable = batch_v1.Runnable()
        runnable.script = batch_v1.Runnable.Script()
        runnable.script.text = config.script

        task = batch_v1.TaskSpec()
        task.runnables = [runnable]
        task.max_retry_count = 0
        task.max_run_duration = f"{config.max_run_duration_seconds}s"

        group = batch_v1.TaskGroup()
        group.task_count = config.task_count
        group.parallelism = config.parallelism
        group.task_spec = task

        instance_policy = batch_v1.AllocationPolicy.InstancePolicy()
        instance_policy.machine_type = config.machine_type
        instances = batch_v1.AllocationPolicy.InstancePolicyOrTemplate()
        instances.policy = instance_policy
        allocation_policy = batch_v1.AllocationPolicy()
        allocation_policy.instances = [instances]

        job = batch_v1.Job()
        job.task_groups = [group]
        job.allocation_policy = allocation_policy
        job.labels = dict(config.labels)
        job.logs_policy = batch_v1.LogsPolicy()
        job.logs_policy.destination = batch_v1.LogsPolicy.Destination.CLOUD_LOGGING

        request = batch_v1.CreateJobRequest(parent=scope.parent, job_id=job_id, job=job)
        created = self._client.create_job(request=request)
        return created.name

    def list_jobs(self, scope: Scope) -> Iterator[str]:
        for job in self._client.list_jobs(parent=scope.parent):
            yield job.name

    def get_job_state(self, job_name: str) -> str:
        job = self._client.get_job(name=job_name)
        return job.status.state.name

    def delete_job(self, job_name: str):
        return self._client.delete_job(name=job_name)


@dataclass
class BatchRunResult:
    """What one Batch workflow run observed."""

    job_name: str | None = None
    status: JobStatus = JobStatus.UNKNOWN
    listed_jobs: list[str] = field(default_factory=list)
    deleted: bool = False
    errors: list[ErrorCause] = field(default_factory=list)


class BatchWorkflow:
    """Create a job, sleep a fixed delay, list and inspect, then delete, one step at a time.

    The delay is a plain sleep of ``poll_delay_seconds``, not a wait for any
    condition. ``wait_for_terminal_state`` is the bounded polling alternative
    for callers that need the job to finish.
    """

    def __init__(
        self,
        service: BatchJobService,
        job_config: BatchJobConfig,
        poll_delay_seconds: float = 30,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if poll_delay_seconds < 0:
            raise ValueError("poll_delay_seconds must not be negative")
        self._service = service
        self._job_config = job_config
        self.poll_delay_seconds = poll_delay_seconds
        self._sleep = sleep

    async def create_job(self, scope: Scope, job_id: str | None = None) -> Outcome[str]:
        job_id = job_id or new_job_id()
        try:
            job_name = await asyncio.to_thread(
                self._service.create_job, scope, job_id, self._job_config
            )
        except Exception as e:
            logger.error(
                "batch_job_create_failed",
                job_id=job_id,
                parent=scope.parent,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("create_job", e))

        logger.info("batch_job_created", job_name=job_name)
        return Outcome.success(job_name)

    async def list_jobs(self, scope: Scope) -> Outcome[list[str]]:
        try:
            names = await asyncio.to_thread(lambda: list(self._service.list_jobs(scope)))
        except Exception as e:
            logger.error(
                "batch_list_jobs_failed",
                parent=scope.parent,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("list_jobs", e), value=[])
        return Outcome.success(names)

    async def get_status(self, job_name: str) -> Outcome[JobStatus]:
        try:
            state_name = await asyncio.to_thread(self._service.get_job_state, job_name)
        except Exception as e:
            logger.warning(
                "failed_to_get_batch_job_status",
                job_name=job_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("get_job", e), value=JobStatus.UNKNOWN)
        return Outcome.success(map_batch_state(state_name))

    async def delete_job(self, job_name: str) -> Outcome[bool]:
        """Delete a Batch job; an already-absent job counts as deleted."""
        try:
            await asyncio.to_thread(self._service.delete_job, job_name)
        except core_exceptions.NotFound:
            logger.info("batch_job_already_deleted", job_name=job_name)
            return Outcome.success(True)
        except Exception as e:
            logger.error(
                "batch_job_delete_failed",
                job_name=job_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Outcome.failure(ErrorCause.from_exception("delete_job", e), value=False)

        logger.info("batch_job_deleted", job_name=job_name)
        return Outcome.success(True)

    async def wait_for_terminal_state(
        self,
        job_name: str,
        poll_interval: float,
        max_polls: int,
    ) -> Outcome[JobStatus]:
        """Poll the job state until it is terminal or ``max_polls`` reads were made.

        Returns the last observed status; a failed read ends the wait.
        """
        if max_polls < 1:
            raise ValueError("max_polls must be at least 1")

        status = JobStatus.UNKNOWN
        for attempt in range(1, max_polls + 1):
            outcome = await self.get_status(job_name)
            if not outcome.ok:
                return outcome
            status = outcome.value
            if status.is_terminal:
                logger.info("batch_job_terminal", job_name=job_name, status=status.value, polls=attempt)
                return outcome
            if attempt < max_polls:
                await self._sleep(poll_interval)

        logger.warning("batch_job_wait_exhausted", job_name=job_name, status=status.value, max_polls=max_polls)
        return Outcome.success(status)

    async def run(self, scope: Scope, job_id: str | None = None) -> BatchRunResult:
        result = BatchRunResult()

        created = await self.create_job(scope, job_id)
        if not created.ok:
            result.errors.append(created.error)
            return result
        result.job_name = created.value

        logger.info(
            "batch_job_fixed_wait",
            job_name=result.job_name,
            delay_seconds=self.poll_delay_seconds,
        )
        await self._sleep(self.poll_delay_seconds)

        listing = await self.list_jobs(scope)
        result.listed_jobs = listing.value or []
        if not listing.ok:
            result.errors.append(listing.error)
        logger.info("batch_jobs_listed", parent=scope.parent, jobs=result.listed_jobs)

        status = await self.get_status(result.job_name)
        result.status = status.value
        if not status.ok:
            result.errors.append(status.error)
        logger.info("batch_job_status", job_name=result.job_name, status=result.status.value)

        deleted = await self.delete_job(result.job_name)
        result.deleted = bool(deleted.value)
        if not deleted.ok:
            result.errors.append(deleted.error)
        return result
