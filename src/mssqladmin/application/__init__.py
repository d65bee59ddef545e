"""
Application layer: the guarded state mutator, its policies and runners.
"""

from mssqladmin.application.approval import AutoApproveGate, ConsoleApprovalGate, RejectAllGate
from mssqladmin.application.batch import BatchRunner
from mssqladmin.application.mutator import GuardedStateMutator
from mssqladmin.application.policies import (
    AgentJobRemovalPolicy,
    HadrTogglePolicy,
    MutationPolicy,
)
from mssqladmin.application.ports import CancellationToken
from mssqladmin.application.status_service import StatusService

__all__ = [
    "AgentJobRemovalPolicy",
    "AutoApproveGate",
    "BatchRunner",
    "CancellationToken",
    "ConsoleApprovalGate",
    "GuardedStateMutator",
    "HadrTogglePolicy",
    "MutationPolicy",
    "RejectAllGate",
    "StatusService",
]
