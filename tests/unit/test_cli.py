"""
Unit tests for the CLI entry points (cli.py).
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as core_exceptions

from cloudjobs import cli
from cloudjobs.config import Settings
from cloudjobs.jobs.cancellation import ExecutionCanceller
from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.launcher import ExecutionLauncher
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.orchestrator import JobOrchestrator
from cloudjobs.jobs.types import Scope
from tests.conftest import FakeJobService, job_path


@pytest.fixture
def quiet_logging():
    with patch.object(cli, "_init_logging"), patch.object(cli, "get_settings", return_value=Settings()):
        yield


class TestArity:
    """Tests for positional argument validation."""

    @pytest.mark.parametrize("argv", [[], ["only-project"], ["p", "r", "extra"]])
    def test_run_rejects_wrong_arity_before_any_client(self, argv, quiet_logging, capsys):
        """Test that a wrong argument count exits with usage and builds no client."""
        with patch.object(cli, "build_orchestrator") as build:
            with pytest.raises(SystemExit) as exc_info:
                cli.main_run(argv)

        assert exc_info.value.code != 0
        assert "usage" in capsys.readouterr().err
        build.assert_not_called()

    @pytest.mark.parametrize("argv", [[], ["p"], ["p", "r", "x"]])
    def test_batch_rejects_wrong_arity(self, argv, quiet_logging):
        with patch.object(cli, "build_batch_workflow") as build:
            with pytest.raises(SystemExit) as exc_info:
                cli.main_batch(argv)

        assert exc_info.value.code != 0
        build.assert_not_called()

    def test_storage_rejects_positional_arguments(self, quiet_logging):
        """Test that the storage demo takes no positional arguments."""
        with patch.object(cli, "build_storage_client") as build:
            with pytest.raises(SystemExit) as exc_info:
                cli.main_storage(["unexpected"])

        assert exc_info.value.code != 0
        build.assert_not_called()


class TestMainRun:
    """Tests for the cloudjobs-run entry point."""

    def test_exits_zero_even_when_every_call_fails(self, quiet_logging):
        """Test that remote failures are logged, not turned into an exit code."""
        scope = Scope("p", "r")
        service = FakeJobService(jobs={scope: [job_path("a")]})
        service.run_errors[job_path("a")] = core_exceptions.PermissionDenied("denied")
        service.list_executions_errors[job_path("a")] = core_exceptions.PermissionDenied("denied")
        catalog = JobCatalog(service)
        orchestrator = JobOrchestrator(
            catalog,
            ExecutionLauncher(service, poll_interval=0),
            ExecutionMonitor(catalog),
            ExecutionCanceller(service),
        )

        with patch.object(cli, "build_orchestrator", return_value=orchestrator):
            assert cli.main_run(["p", "r"]) == 0

        assert service.calls[0] == ("list_jobs", scope.parent)
        assert ("run_job", job_path("a")) in service.calls

    def test_idle_wait_settings_reach_the_monitor(self):
        """Test that the idle poll interval and bound configure the orchestrator's monitor."""
        settings = Settings(IDLE_POLL_INTERVAL_SECONDS=3, IDLE_MAX_POLLS=4)
        with patch.object(cli.CloudRunJobService, "from_settings", return_value=FakeJobService()):
            orchestrator = cli.build_orchestrator(settings)

        assert orchestrator.monitor.poll_interval == 3
        assert orchestrator.monitor.max_polls == 4


class TestMainBatch:
    """Tests for the cloudjobs-batch entry point."""

    def test_poll_delay_option_is_passed_through(self, quiet_logging):
        """Test that --poll-delay-seconds reaches the workflow builder."""
        workflow = MagicMock()

        async def run(scope):
            return MagicMock(job_name=None, status=MagicMock(value="unknown"), deleted=False, errors=[])

        workflow.run.side_effect = run
        with patch.object(cli, "build_batch_workflow", return_value=workflow) as build:
            assert cli.main_batch(["p", "r", "--poll-delay-seconds", "5"]) == 0

        assert build.call_args.args[1] == 5.0
        workflow.run.assert_called_once_with(Scope("p", "r"))

    def test_negative_delay_is_a_usage_error(self, quiet_logging):
        with pytest.raises(SystemExit) as exc_info:
            cli.main_batch(["p", "r", "--poll-delay-seconds", "-1"])
        assert exc_info.value.code == 2

    def test_settings_delay_used_by_default(self):
        """Test that the POLL_DELAY_SECONDS setting is used when no option is given."""
        settings = Settings(POLL_DELAY_SECONDS=45)
        with patch.object(cli.BatchJobService, "from_settings", return_value=MagicMock()):
            workflow = cli.build_batch_workflow(settings)
        assert workflow.poll_delay_seconds == 45

    def test_default_delay_is_thirty_seconds(self, monkeypatch):
        """Test that with nothing configured the Batch workflow waits 30 seconds."""
        monkeypatch.delenv("POLL_DELAY_SECONDS", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        with patch.object(cli.BatchJobService, "from_settings", return_value=MagicMock()):
            workflow = cli.build_batch_workflow(Settings())
        assert workflow.poll_delay_seconds == 30
