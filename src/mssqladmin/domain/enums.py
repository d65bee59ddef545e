"""
Domain enums for guarded administrative mutations.

This module defines all enumeration types used by the mutator workflow.
"""

from enum import Enum


class AuthType(Enum):
    """Authentication types for SQL Server connections."""

    WINDOWS = "windows"
    SQL = "sql"


class IdempotencyPolicy(Enum):
    """What to do when a target already satisfies the requested state."""

    ALWAYS_APPLY = "always_apply"
    SKIP_IF_SATISFIED = "skip_if_satisfied"


class WorkflowState(Enum):
    """Per-target workflow states, in the order they are normally visited."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    STATE_READ = "state_read"
    APPROVED = "approved"
    REJECTED = "rejected"
    MUTATED = "mutated"
    MUTATION_FAILED = "mutation_failed"
    CASCADE_APPLIED = "cascade_applied"
    CASCADE_FAILED = "cascade_failed"
    CASCADE_SKIPPED = "cascade_skipped"
    VERIFIED = "verified"
    VERIFY_FAILED = "verify_failed"
    REPORTED = "reported"


class ErrorCategory(Enum):
    """Error taxonomy attached to per-target results."""

    CONNECTION = "connection"
    READ = "read"
    MUTATION = "mutation"
    CASCADE = "cascade"
    VALIDATION = "validation"
    INTERNAL = "internal"


class ResultStatus(Enum):
    """Overall outcome of one target."""

    APPLIED = "applied"
    SKIPPED = "skipped"  # Already at desired state
    REJECTED = "rejected"  # Approval declined
    NOT_FOUND = "not_found"  # Object to remove does not exist
    CANCELLED = "cancelled"
    UNCHANGED = "unchanged"  # Read-only status query
    FAILED = "failed"
