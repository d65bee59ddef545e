"""
Base class for mutation policies.

A policy tells the guarded state mutator what to read, how to describe
the transition, which changes to apply and which services depend on it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from mssqladmin.domain.models import ChangeSpec, MutationRequest, Target


class MutationPolicy(ABC):
    """
    Abstract Base Class for call-site policies.
    """

    name: ClassVar[str] = "mutation"
    # Whether the change only takes effect after a service restart
    requires_restart: ClassVar[bool] = False

    def validate(self, request: MutationRequest) -> None:
        """Fail fast on insufficient input, before any network call."""
        request.validate_request()

    @abstractmethod
    def state_key(self, target: Target, request: MutationRequest) -> Any:
        """Key handed to StateReader.read_state."""

    @abstractmethod
    def is_satisfied(self, state: Any, request: MutationRequest) -> bool:
        """True when the target already has the requested end state."""

    def is_absent(self, state: Any) -> bool:
        """True when the object to act on does not exist."""
        return False

    @abstractmethod
    def describe(self, target: Target, state: Any, request: MutationRequest) -> str:
        """Human-readable transition shown to the approval gate."""

    @abstractmethod
    def plan(self, target: Target, state: Any, request: MutationRequest) -> list[ChangeSpec]:
        """Ordered changes to apply."""

    def dependent_services(self, target: Target) -> list[str]:
        """Services the cascade stops and starts, in order."""
        return []
