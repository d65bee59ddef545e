"""
SQL Agent job removal policy.
"""

from __future__ import annotations

from typing import ClassVar

from mssqladmin.application.policies.base import MutationPolicy
from mssqladmin.domain.models import (
    ChangeSpec,
    DropJob,
    JobKey,
    JobRemovalRequest,
    JobState,
    PurgeJobHistory,
    Target,
)


class AgentJobRemovalPolicy(MutationPolicy):
    """
    Removes one agent job.

    History is purged before the drop unless keep_history is set. The drop
    removes schedules no other job uses unless keep_unused_schedule is set.
    """

    name: ClassVar[str] = "agent_job"

    def state_key(self, target: Target, request: JobRemovalRequest) -> JobKey:
        return JobKey(job_name=request.job_name, job_id=request.job_id)

    def is_satisfied(self, state: JobState, request: JobRemovalRequest) -> bool:
        return not state.exists

    def is_absent(self, state: JobState) -> bool:
        return not state.exists

    def describe(self, target: Target, state: JobState, request: JobRemovalRequest) -> str:
        name = state.handle.name if state.handle else request.job_label
        extras = []
        if not request.keep_history:
            extras.append("purging history")
        if request.keep_unused_schedule:
            extras.append("keeping unused schedules")
        suffix = f" ({', '.join(extras)})" if extras else ""
        return f"Removing agent job '{name}' from {target.full_name}{suffix}"

    def plan(self, target: Target, state: JobState, request: JobRemovalRequest) -> list[ChangeSpec]:
        handle = state.handle
        if handle is None:
            return []
        changes: list[ChangeSpec] = []
        if not request.keep_history:
            changes.append(PurgeJobHistory(handle=handle))
        changes.append(DropJob(handle=handle, keep_unused_schedule=request.keep_unused_schedule))
        return changes
