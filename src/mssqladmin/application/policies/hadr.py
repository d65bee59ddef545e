"""
HADR toggle policy.

Sets IsHadrEnabled on the engine service. The setting is only picked up by
the engine at startup, hence requires_restart.
"""

from __future__ import annotations

from typing import ClassVar

from mssqladmin.application.policies.base import MutationPolicy
from mssqladmin.domain.models import (
    ChangeSpec,
    HadrKey,
    HadrRequest,
    HadrState,
    SetHadrFlag,
    Target,
)
from mssqladmin.domain.services import engine_service_name, restart_service_names


class HadrTogglePolicy(MutationPolicy):
    """Enable or disable the HADR service flag of one instance."""

    name: ClassVar[str] = "hadr"
    requires_restart: ClassVar[bool] = True

    def state_key(self, target: Target, request: HadrRequest) -> HadrKey:
        return HadrKey(service_name=engine_service_name(target))

    def is_satisfied(self, state: HadrState, request: HadrRequest) -> bool:
        return state.enabled == request.enabled

    def describe(self, target: Target, state: HadrState, request: HadrRequest) -> str:
        verb = "Enabling" if request.enabled else "Disabling"
        return (
            f"{verb} HADR on {target.full_name} "
            f"(IsHadrEnabled: {state.enabled} -> {request.enabled})"
        )

    def plan(self, target: Target, state: HadrState, request: HadrRequest) -> list[ChangeSpec]:
        return [SetHadrFlag(service_name=engine_service_name(target), enabled=request.enabled)]

    def dependent_services(self, target: Target) -> list[str]:
        return restart_service_names(target)
