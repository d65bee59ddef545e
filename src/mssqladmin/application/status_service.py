"""
Read-only status queries (HADR flag, agent job presence).
"""

from __future__ import annotations

import logging
from typing import Any

from mssqladmin.application.ports import ConnectionProvider, DiagnosticsSink, StateReader
from mssqladmin.domain.enums import ResultStatus, WorkflowState
from mssqladmin.domain.errors import StateReadError, TargetConnectionError
from mssqladmin.domain.models import HadrKey, JobKey, MutationResult, Target
from mssqladmin.domain.services import engine_service_name

logger = logging.getLogger(__name__)


class StatusService:
    """Reads state without touching it. One result per target, in input order."""

    def __init__(
        self,
        connections: ConnectionProvider,
        reader: StateReader,
        diagnostics: DiagnosticsSink,
    ) -> None:
        self.connections = connections
        self.reader = reader
        self.diagnostics = diagnostics

    def hadr_status(self, targets: list[Target], credential: Any | None = None) -> list[MutationResult]:
        return [
            self._read(t, HadrKey(service_name=engine_service_name(t)), credential)
            for t in targets
        ]

    def job_status(
        self, targets: list[Target], job_name: str, credential: Any | None = None
    ) -> list[MutationResult]:
        return [self._read(t, JobKey(job_name=job_name), credential) for t in targets]

    def _read(self, target: Target, key: Any, credential: Any | None) -> MutationResult:
        result = MutationResult.for_target(target)
        try:
            session = self.connections.connect(target, credential)
        except TargetConnectionError as e:
            result.add_error(e.category, e.message, WorkflowState.DISCONNECTED)
            self.diagnostics.emit(logging.ERROR, "connection_error", target.full_name, detail=e.message)
            return result

        result.advance(WorkflowState.CONNECTED)
        try:
            state = self.reader.read_state(session, key)
        except (StateReadError, TargetConnectionError) as e:
            result.add_error(e.category, e.message, WorkflowState.CONNECTED)
            self.diagnostics.emit(logging.ERROR, "read_error", target.full_name, detail=e.message)
            return result
        finally:
            session.close()

        result.advance(WorkflowState.STATE_READ)
        result.prior_value = result.new_value = state.value
        result.status = ResultStatus.UNCHANGED
        self.diagnostics.emit(logging.INFO, "status", target.full_name, value=state.value)
        return result
