"""
Test configuration and fixtures.
"""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Iterator

import pytest
from google.api_core import exceptions as core_exceptions

from cloudjobs.jobs.cancellation import ExecutionCanceller
from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.launcher import ExecutionLauncher
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.orchestrator import JobOrchestrator
from cloudjobs.jobs.types import Execution, Scope

SCOPE = Scope(project="test-project", region="europe-west1")


class FakeOperation:
    """Long-running operation double: ``done()`` turns True on the ``done_after``-th call."""

    def __init__(self, execution_name: str | None, done_after: int = 1, error: Exception | None = None):
        self.metadata = SimpleNamespace(name=execution_name)
        self.name = f"operations/{execution_name}"
        self.done_after = done_after
        self.error = error
        self.done_calls = 0
        self.result_calls = 0

    def done(self) -> bool:
        self.done_calls += 1
        return self.done_calls >= self.done_after

    def result(self, timeout: float | None = None) -> Any:
        self.result_calls += 1
        if self.error is not None:
            raise self.error
        return self.metadata


class FakeJobService:
    """In-memory RemoteJobService that records every call in order."""

    def __init__(
        self,
        jobs: dict[Scope, list[str]] | None = None,
        executions: dict[str, list[Execution]] | None = None,
    ):
        self.jobs = jobs or {}
        self.executions = executions or {}
        self.calls: list[tuple[str, str]] = []
        self.operations: list[FakeOperation] = []
        self.done_after = 1
        self.execution_errors: dict[str, Exception] = {}
        self.run_errors: dict[str, Exception] = {}
        self.cancel_errors: dict[str, Exception] = {}
        self.list_jobs_error: Exception | None = None
        self.list_jobs_error_after: int = 0
        self.list_executions_errors: dict[str, Exception] = {}
        self.deleted: set[str] = set()

    def run_job(self, job_name: str) -> FakeOperation:
        self.calls.append(("run_job", job_name))
        if job_name in self.run_errors:
            raise self.run_errors[job_name]
        execution_name = f"{job_name}/executions/exec-{len(self.operations) + 1}"
        operation = FakeOperation(
            execution_name,
            done_after=self.done_after,
            error=self.execution_errors.get(job_name),
        )
        self.operations.append(operation)
        return operation

    def list_jobs(self, scope: Scope) -> Iterator[str]:
        self.calls.append(("list_jobs", scope.parent))
        names = self.jobs.get(scope, [])
        for index, name in enumerate(names):
            if self.list_jobs_error is not None and index == self.list_jobs_error_after:
                raise self.list_jobs_error
            yield name
        if self.list_jobs_error is not None and self.list_jobs_error_after >= len(names):
            raise self.list_jobs_error

    def list_executions(self, job_name: str) -> Iterator[Execution]:
        self.calls.append(("list_executions", job_name))
        if job_name in self.list_executions_errors:
            raise self.list_executions_errors[job_name]
        yield from self.executions.get(job_name, [])

    def cancel_execution(self, execution_name: str) -> FakeOperation:
        self.calls.append(("cancel_execution", execution_name))
        if execution_name in self.cancel_errors:
            raise self.cancel_errors[execution_name]
        return FakeOperation(execution_name)

    def delete_job(self, job_name: str) -> FakeOperation:
        self.calls.append(("delete_job", job_name))
        if job_name in self.deleted:
            raise core_exceptions.NotFound(f"Job {job_name} not found")
        self.deleted.add(job_name)
        return FakeOperation(None)


def job_path(short_name: str) -> str:
    return f"{SCOPE.parent}/jobs/{short_name}"


@pytest.fixture
def scope() -> Scope:
    return SCOPE


@pytest.fixture
def service() -> FakeJobService:
    return FakeJobService()


@pytest.fixture
def catalog(service: FakeJobService) -> JobCatalog:
    return JobCatalog(service)


@pytest.fixture
def launcher(service: FakeJobService) -> ExecutionLauncher:
    return ExecutionLauncher(service, poll_interval=0)


@pytest.fixture
def monitor(catalog: JobCatalog) -> ExecutionMonitor:
    return ExecutionMonitor(catalog)


@pytest.fixture
def canceller(service: FakeJobService) -> ExecutionCanceller:
    return ExecutionCanceller(service)


@pytest.fixture
def orchestrator(
    catalog: JobCatalog,
    launcher: ExecutionLauncher,
    monitor: ExecutionMonitor,
    canceller: ExecutionCanceller,
) -> JobOrchestrator:
    return JobOrchestrator(catalog, launcher, monitor, canceller)
