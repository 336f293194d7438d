"""
Type definitions and constants for job lifecycle operations.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

from google.api_core import exceptions as core_exceptions

T = TypeVar("T")


class LaunchMode(str, Enum):
    """How the launcher treats the long-running operation returned by a start request."""

    FIRE_AND_FORGET = "fire_and_forget"
    WAIT_UNTIL_DONE = "wait_until_done"


class JobStatus(str, Enum):
    """Status of a Batch job. Cloud Run executions have no such enum."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DELETING = "deleting"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass(frozen=True)
class Scope:
    """Project/region pair that catalog operations apply to."""

    project: str
    region: str

    @property
    def parent(self) -> str:
        return f"projects/{self.project}/locations/{self.region}"


@dataclass(frozen=True)
class JobDefinition:
    """A submittable job, identified by its full resource name."""

    name: str
    scope: Scope

    @property
    def short_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class Execution:
    """One run instance of a job as reported by the provider."""

    name: str
    job: str
    reconciling: bool = False
    running_count: int = 0

    @property
    def is_active(self) -> bool:
        """An execution is active while the provider is reconciling it or any task runs."""
        return self.reconciling or self.running_count > 0


@dataclass(frozen=True)
class ErrorCause:
    """Structured cause of a failed remote call."""

    operation: str
    error_type: str
    message: str
    not_found: bool = False

    @classmethod
    def from_exception(cls, operation: str, exc: BaseException) -> "ErrorCause":
        return cls(
            operation=operation,
            error_type=type(exc).__name__,
            message=str(exc),
            not_found=isinstance(exc, core_exceptions.NotFound),
        )


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value of a remote call plus the cause when it failed.

    A failed listing keeps ``value`` as an empty list, so code that only reads
    ``value`` sees "no results" exactly like a genuinely empty listing. Callers
    that need to tell the two apart check ``ok`` or ``error``.
    """

    value: T | None = None
    error: ErrorCause | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorCause, value: T | None = None) -> "Outcome[T]":
        return cls(value=value, error=error)


@dataclass(frozen=True)
class CancellationResult:
    """Outcome of one cancel request.

    ``accepted`` means the provider took the request, not that the execution
    has stopped.
    """

    execution_name: str
    accepted: bool
    not_found: bool = False
    error: ErrorCause | None = None


@dataclass
class BatchJobConfig:
    """Template for a script-based Batch job."""

    script: str
    task_count: int = 4
    parallelism: int = 2
    machine_type: str = "e2-standard-4"
    max_run_duration_seconds: int = 3600
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class RunReport:
    """Counters collected while an orchestrator run proceeds."""

    scope: Scope
    jobs: list[str] = field(default_factory=list)
    listing_failed: bool = False
    waited_ok: int = 0
    waited_failed: int = 0
    fired_ok: int = 0
    fired_failed: int = 0
    cancelled: int = 0
    cancel_failed: int = 0
    monitor_failed: int = 0

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "project": self.scope.project,
            "region": self.scope.region,
            "job_count": len(self.jobs),
            "listing_failed": self.listing_failed,
            "waited_ok": self.waited_ok,
            "waited_failed": self.waited_failed,
            "fired_ok": self.fired_ok,
            "fired_failed": self.fired_failed,
            "cancelled": self.cancelled,
            "cancel_failed": self.cancel_failed,
            "monitor_failed": self.monitor_failed,
        }


class OperationHandle(Protocol):
    """Subset of ``google.api_core.operation.Operation`` the launcher relies on."""

    metadata: Any

    def done(self) -> bool: ...

    def result(self, timeout: float | None = None) -> Any: ...
