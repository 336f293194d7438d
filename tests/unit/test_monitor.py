"""
Unit tests for active execution lookup (monitor.py).
"""
from __future__ import annotations

from typing import Iterator
from unittest.mock import AsyncMock, patch

import pytest
from google.api_core import exceptions as core_exceptions

from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.types import Execution
from tests.conftest import FakeJobService, job_path


class SnapshotService(FakeJobService):
    """Returns a different execution snapshot on each listing."""

    def __init__(self, snapshots: list[list[Execution]]):
        super().__init__()
        self.snapshots = snapshots

    def list_executions(self, job_name: str) -> Iterator[Execution]:
        self.calls.append(("list_executions", job_name))
        snapshot = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        yield from snapshot


def _running(job: str, name: str) -> Execution:
    return Execution(name=f"{job}/executions/{name}", job=job, running_count=1)


class TestListActiveExecutions:
    """Tests for ExecutionMonitor.list_active_executions."""

    async def test_projects_names(self, service, monitor):
        """Test that only active execution names are returned."""
        job = job_path("a")
        service.executions[job] = [
            _running(job, "e1"),
            Execution(name=f"{job}/executions/e2", job=job),
        ]

        outcome = await monitor.list_active_executions(job)

        assert outcome.ok
        assert outcome.value == [f"{job}/executions/e1"]

    async def test_failure_is_carried(self, service, monitor):
        """Test that a failed snapshot keeps its cause."""
        job = job_path("a")
        service.list_executions_errors[job] = core_exceptions.ServiceUnavailable("down")

        outcome = await monitor.list_active_executions(job)

        assert outcome.value == []
        assert not outcome.ok


class TestWaitUntilIdle:
    """Tests for the bounded ExecutionMonitor.wait_until_idle loop."""

    async def test_returns_true_once_snapshot_is_empty(self):
        """Test that waiting stops at the first idle snapshot."""
        job = job_path("a")
        service = SnapshotService([[_running(job, "e1")], [_running(job, "e1")], []])
        monitor = ExecutionMonitor(JobCatalog(service))

        outcome = await monitor.wait_until_idle(job, poll_interval=0, max_polls=5)

        assert outcome.ok
        assert outcome.value is True
        assert len(service.calls) == 3

    async def test_bound_is_respected(self):
        """Test that at most max_polls snapshots are taken."""
        job = job_path("a")
        service = SnapshotService([[_running(job, "e1")]])
        monitor = ExecutionMonitor(JobCatalog(service))

        outcome = await monitor.wait_until_idle(job, poll_interval=0, max_polls=3)

        assert outcome.ok
        assert outcome.value is False
        assert len(service.calls) == 3

    async def test_defaults_come_from_construction(self):
        """Test that omitted arguments use the interval and bound given to the monitor."""
        job = job_path("a")
        service = SnapshotService([[_running(job, "e1")]])
        monitor = ExecutionMonitor(JobCatalog(service), poll_interval=2.5, max_polls=2)

        with patch("cloudjobs.jobs.monitor.asyncio.sleep", new=AsyncMock()) as sleep:
            outcome = await monitor.wait_until_idle(job)

        assert outcome.value is False
        assert len(service.calls) == 2
        sleep.assert_awaited_once_with(2.5)

    async def test_failed_snapshot_stops_waiting(self, service, monitor):
        """Test that a failed snapshot ends the wait with that failure."""
        job = job_path("a")
        service.list_executions_errors[job] = core_exceptions.PermissionDenied("denied")

        outcome = await monitor.wait_until_idle(job, poll_interval=0, max_polls=3)

        assert not outcome.ok
        assert outcome.value is False
        assert len(service.calls) == 1

    async def test_rejects_non_positive_bound(self, monitor):
        """Test that a zero bound is refused."""
        with pytest.raises(ValueError):
            await monitor.wait_until_idle(job_path("a"), poll_interval=0, max_polls=0)

    def test_rejects_non_positive_default_bound(self, catalog):
        """Test that a zero default bound is refused at construction."""
        with pytest.raises(ValueError):
            ExecutionMonitor(catalog, max_polls=0)
