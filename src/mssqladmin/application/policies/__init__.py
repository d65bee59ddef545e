"""
Call-site policies plugged into the guarded state mutator.
"""

from mssqladmin.application.policies.agent_job import AgentJobRemovalPolicy
from mssqladmin.application.policies.base import MutationPolicy
from mssqladmin.application.policies.hadr import HadrTogglePolicy

__all__ = [
    "AgentJobRemovalPolicy",
    "HadrTogglePolicy",
    "MutationPolicy",
]
