"""
Domain models for guarded administrative mutations.

Contains the Target identity, mutation requests, resource state snapshots,
change specifications and the per-target MutationResult record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mssqladmin.domain.enums import (
    ErrorCategory,
    IdempotencyPolicy,
    ResultStatus,
    WorkflowState,
)
from mssqladmin.domain.errors import RequestValidationError

DEFAULT_INSTANCE = "MSSQLSERVER"


# ============================================================================
# Target
# ============================================================================

class Target(BaseModel):
    """
    One addressable SQL Server instance (host + logical instance name).

    Immutable for the duration of one invocation.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., description="Computer name or address")
    instance_name: str = Field(DEFAULT_INSTANCE, description="Logical instance name")
    port: Optional[int] = Field(None, description="TCP port, when addressed as host,port")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate host is not empty."""
        if not v or not v.strip():
            raise ValueError("Host cannot be empty")
        return v.strip()

    @field_validator("instance_name", mode="before")
    @classmethod
    def normalize_instance(cls, v: Optional[str]) -> str:
        """Blank instance names mean the default instance."""
        if v is None or not str(v).strip():
            return DEFAULT_INSTANCE
        return str(v).strip()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        """Validate port number."""
        if v is not None and (v < 1 or v > 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_default_instance(self) -> bool:
        return self.instance_name.upper() == DEFAULT_INSTANCE

    @property
    def identity(self) -> tuple[str, str]:
        """Case-insensitive (host, instance) key; the port only addresses it."""
        return self.host.casefold(), self.instance_name.upper()

    @property
    def full_name(self) -> str:
        """Name as it appears in connection strings and reports."""
        if self.is_default_instance:
            name = self.host
        else:
            name = f"{self.host}\\{self.instance_name}"
        if self.port:
            name = f"{name},{self.port}"
        return name

    def __str__(self) -> str:
        return self.full_name


# ============================================================================
# Requests
# ============================================================================

class MutationRequest(BaseModel):
    """Desired end state plus options shared by every mutation kind."""

    model_config = ConfigDict(frozen=True)

    force: bool = Field(False, description="Restart dependent services after the change")
    confirm: bool = Field(True, description="Ask the approval gate before mutating")
    idempotency: IdempotencyPolicy = Field(
        IdempotencyPolicy.ALWAYS_APPLY,
        description="Whether to skip targets already at the desired state",
    )
    credential_ref: Optional[str] = Field(None, description="Opaque credential reference")

    def validate_request(self) -> None:
        """Fail fast on insufficient input. Subclasses extend this."""


class HadrRequest(MutationRequest):
    """Set the HADR service flag of an instance."""

    enabled: bool = Field(False, description="Desired IsHadrEnabled value")


class JobRemovalRequest(MutationRequest):
    """Remove a SQL Agent job, identified by name or job_id."""

    job_name: Optional[str] = Field(None, description="Job name")
    job_id: Optional[UUID] = Field(None, description="Job identifier")
    keep_history: bool = Field(False, description="Do not purge job history first")
    keep_unused_schedule: bool = Field(
        False, description="Preserve schedules no other job references"
    )

    @field_validator("job_name")
    @classmethod
    def strip_job_name(cls, v: Optional[str]) -> Optional[str]:
        """Job names are looked up exactly; surrounding blanks are never intended."""
        if v is None:
            return None
        return v.strip() or None

    def validate_request(self) -> None:
        if self.job_id is None and not self.job_name:
            raise RequestValidationError("Either a job name or a job id must be supplied")

    @property
    def job_label(self) -> str:
        return self.job_name or str(self.job_id)


# ============================================================================
# Resource state snapshots
# ============================================================================

@dataclass(frozen=True)
class HadrState:
    """Configured IsHadrEnabled flag of the engine service."""

    enabled: bool

    @property
    def value(self) -> bool:
        return self.enabled


@dataclass(frozen=True)
class JobHandle:
    """Resolved identity of an agent job, reused for every later call."""

    job_id: UUID
    name: str


@dataclass(frozen=True)
class JobState:
    """Existence and identity of a named agent job."""

    exists: bool
    handle: JobHandle | None = None

    @property
    def value(self) -> str | None:
        return self.handle.name if self.handle else None


@dataclass(frozen=True)
class JobKey:
    """Lookup key for an agent job: by id when known, else by name."""

    job_name: str | None = None
    job_id: UUID | None = None


@dataclass(frozen=True)
class HadrKey:
    """Lookup key for the HADR flag of one engine service."""

    service_name: str


# ============================================================================
# Change specifications
# ============================================================================

@dataclass(frozen=True)
class SetHadrFlag:
    """Set IsHadrEnabled on the engine service (flag=1 enable, 0 disable)."""

    service_name: str
    enabled: bool

    @property
    def flag(self) -> int:
        return 1 if self.enabled else 0


@dataclass(frozen=True)
class PurgeJobHistory:
    """Delete msdb history rows of a job."""

    handle: JobHandle


@dataclass(frozen=True)
class DropJob:
    """Delete a job; keep_unused_schedule preserves unreferenced schedules."""

    handle: JobHandle
    keep_unused_schedule: bool = False


ChangeSpec = SetHadrFlag | PurgeJobHistory | DropJob


# ============================================================================
# Result
# ============================================================================

class ErrorRecord(BaseModel):
    """One error attached to a target result."""

    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    message: str
    step: WorkflowState


class MutationResult(BaseModel):
    """
    Outcome record for one target.

    prior_value and new_value are both observed values; new_value reflects
    the re-verification read, never the requested value.
    """

    host: str
    instance_name: str
    full_name: str
    prior_value: Any = None
    new_value: Any = None
    applied: bool = False
    cascade_applied: bool = False
    status: ResultStatus = ResultStatus.FAILED
    trail: List[WorkflowState] = Field(
        default_factory=lambda: [WorkflowState.DISCONNECTED],
        description="Workflow states visited, in order",
    )
    errors: List[ErrorRecord] = Field(default_factory=list)

    @classmethod
    def for_target(cls, target: Target) -> "MutationResult":
        return cls(
            host=target.host,
            instance_name=target.instance_name,
            full_name=target.full_name,
        )

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def final_state(self) -> WorkflowState:
        return self.trail[-1]

    def advance(self, state: WorkflowState) -> None:
        self.trail.append(state)

    def add_error(self, category: ErrorCategory, message: str, step: WorkflowState) -> None:
        self.errors.append(ErrorRecord(category=category, message=message, step=step))

    def has_error(self, category: ErrorCategory) -> bool:
        return any(e.category == category for e in self.errors)
