"""
Cloud Run Jobs client construction and the provider adapter used by the job lifecycle components.

Clients are built explicitly and handed to the components that need them; nothing
here is cached at module level.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Protocol

import structlog

from cloudjobs.constants import OAUTH_SCOPE_CLOUD_PLATFORM
from cloudjobs.jobs.types import Execution, OperationHandle, Scope

if TYPE_CHECKING:
    from google.auth.credentials import Credentials
    from google.cloud.run_v2 import ExecutionsClient, JobsClient

    from cloudjobs.config import Settings

logger = structlog.get_logger(__name__)


class RemoteJobService(Protocol):
    """Narrow view of a managed job service.

    Listing methods may return lazy iterables; page reads happen while the
    caller iterates, so failures surface during iteration.
    """

    def run_job(self, job_name: str) -> OperationHandle: ...

    def list_jobs(self, scope: Scope) -> Iterable[str]: ...

    def list_executions(self, job_name: str) -> Iterable[Execution]: ...

    def cancel_execution(self, execution_name: str) -> OperationHandle: ...

    def delete_job(self, job_name: str) -> OperationHandle: ...


def build_credentials(settings: Settings) -> Credentials | None:
    """Build service account credentials from settings.

    Returns:
        Credentials when GCP_SERVICE_ACCOUNT is set, None otherwise (clients then
        fall back to Application Default Credentials).
    """
    if not settings.GCP_SERVICE_ACCOUNT:
        logger.debug("using_application_default_credentials")
        return None

    from google.oauth2 import service_account

    service_account_info = json.loads(settings.GCP_SERVICE_ACCOUNT)
    return service_account.Credentials.from_service_account_info(
        service_account_info,
        scopes=[OAUTH_SCOPE_CLOUD_PLATFORM],
    )


def build_jobs_client(credentials: Credentials | None = None) -> JobsClient:
    from google.cloud import run_v2

    client = run_v2.JobsClient(credentials=credentials)
    logger.debug("cloud_run_jobs_client_initialized")
    return client


def build_executions_client(credentials: Credentials | None = None) -> ExecutionsClient:
    from google.cloud import run_v2

    client = run_v2.ExecutionsClient(credentials=credentials)
    logger.debug("cloud_run_executions_client_initialized")
    return client


def _to_execution(execution: Any) -> Execution:
    """Convert a run_v2 Execution message to the local snapshot type."""
    return Execution(
        name=execution.name,
        job=execution.job,
        reconciling=bool(execution.reconciling),
        running_count=int(execution.running_count or 0),
    )


class CloudRunJobService:
    """RemoteJobService backed by the Cloud Run Admin API (v2)."""

    def __init__(self, jobs_client: JobsClient, executions_client: ExecutionsClient):
        self._jobs = jobs_client
        self._executions = executions_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudRunJobService":
        credentials = build_credentials(settings)
        return cls(build_jobs_client(credentials), build_executions_client(credentials))

    def run_job(self, job_name: str) -> OperationHandle:
        from google.cloud.run_v2.types import RunJobRequest

        return self._jobs.run_job(request=RunJobRequest(name=job_name))

    def list_jobs(self, scope: Scope) -> Iterator[str]:
        for job in self._jobs.list_jobs(parent=scope.parent):
            yield job.name

    def list_executions(self, job_name: str) -> Iterator[Execution]:
        for execution in self._executions.list_executions(parent=job_name):
            yield _to_execution(execution)

    def cancel_execution(self, execution_name: str) -> OperationHandle:
        from google.cloud.run_v2.types import CancelExecutionRequest

        return self._executions.cancel_execution(
            request=CancelExecutionRequest(name=execution_name)
        )

    def delete_job(self, job_name: str) -> OperationHandle:
        return self._jobs.delete_job(name=job_name)
