"""
Collaborator interfaces consumed by the guarded state mutator.

Implementations live in the infrastructure layer (pyodbc, pywinrm) and in
the test suite (recording fakes).
"""

from __future__ import annotations

import threading
from typing import Any, Protocol, runtime_checkable

from mssqladmin.domain.models import ChangeSpec, Target


@runtime_checkable
class Session(Protocol):
    """An open handle to one target's management surface."""

    def close(self) -> None: ...


class ConnectionProvider(Protocol):
    def connect(self, target: Target, credential: Any | None) -> Session:
        """Open a session or raise TargetConnectionError."""
        ...


class StateReader(Protocol):
    def read_state(self, session: Session, key: Any) -> Any:
        """Return a fresh state snapshot or raise StateReadError."""
        ...


class ChangeApplier(Protocol):
    def apply_change(self, session: Session, change: ChangeSpec) -> None:
        """Apply one change or raise MutationError."""
        ...


class ServiceController(Protocol):
    def stop_services(self, host: str, instance: str, names: list[str]) -> None: ...

    def start_services(self, host: str, instance: str, names: list[str]) -> None: ...


class ApprovalGate(Protocol):
    def confirm(self, description: str) -> bool: ...


class DiagnosticsSink(Protocol):
    def emit(self, level: int, event: str, target: str | None = None, **fields: Any) -> None: ...


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and workers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
