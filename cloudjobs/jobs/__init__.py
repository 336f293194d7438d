"""
Job lifecycle module for managed job services.

This module provides functionality for listing, launching, monitoring, and
cancelling Cloud Run job executions, plus the Cloud Batch create/inspect/delete
workflow.
"""

from cloudjobs.jobs.batch import BatchJobService, BatchWorkflow
from cloudjobs.jobs.cancellation import ExecutionCanceller
from cloudjobs.jobs.catalog import JobCatalog
from cloudjobs.jobs.client import CloudRunJobService, RemoteJobService
from cloudjobs.jobs.launcher import ExecutionLauncher
from cloudjobs.jobs.monitor import ExecutionMonitor
from cloudjobs.jobs.orchestrator import JobOrchestrator
from cloudjobs.jobs.types import (
    CancellationResult,
    ErrorCause,
    Execution,
    JobDefinition,
    JobStatus,
    LaunchMode,
    Outcome,
    RunReport,
    Scope,
)

__all__ = [
    "BatchJobService",
    "BatchWorkflow",
    "CancellationResult",
    "CloudRunJobService",
    "ErrorCause",
    "Execution",
    "ExecutionCanceller",
    "ExecutionLauncher",
    "ExecutionMonitor",
    "JobDefinition",
    "JobCatalog",
    "JobOrchestrator",
    "JobStatus",
    "LaunchMode",
    "Outcome",
    "RemoteJobService",
    "RunReport",
    "Scope",
]
