"""
Domain layer: pure models, enums and the error taxonomy.
"""

from .enums import (
    AuthType,
    ErrorCategory,
    IdempotencyPolicy,
    ResultStatus,
    WorkflowState,
)
from .errors import (
    AdminError,
    CascadeError,
    MutationError,
    RequestValidationError,
    StateReadError,
    TargetConnectionError,
)
from .models import (
    ChangeSpec,
    DropJob,
    ErrorRecord,
    HadrKey,
    HadrRequest,
    HadrState,
    JobHandle,
    JobKey,
    JobRemovalRequest,
    JobState,
    MutationRequest,
    MutationResult,
    PurgeJobHistory,
    SetHadrFlag,
    Target,
)

__all__ = [
    "AdminError",
    "AuthType",
    "CascadeError",
    "ChangeSpec",
    "DropJob",
    "ErrorCategory",
    "ErrorRecord",
    "HadrKey",
    "HadrRequest",
    "HadrState",
    "IdempotencyPolicy",
    "JobHandle",
    "JobKey",
    "JobRemovalRequest",
    "JobState",
    "MutationError",
    "MutationRequest",
    "MutationResult",
    "PurgeJobHistory",
    "RequestValidationError",
    "ResultStatus",
    "SetHadrFlag",
    "StateReadError",
    "Target",
    "TargetConnectionError",
    "WorkflowState",
]
