"""
Dependency injection container for the application.

This module wires infrastructure implementations into the guarded state
mutator, the batch runner and the status service.
"""

import logging
from pathlib import Path
from typing import Optional

from mssqladmin.application.approval import AutoApproveGate
from mssqladmin.application.batch import BatchRunner
from mssqladmin.application.mutator import GuardedStateMutator
from mssqladmin.application.ports import ApprovalGate
from mssqladmin.application.status_service import StatusService
from mssqladmin.domain.config import AdminSettings, Credential
from mssqladmin.infrastructure.config import ConfigRepository, CredentialManager
from mssqladmin.infrastructure.diagnostics import LoggingDiagnostics
from mssqladmin.infrastructure.psremote import (
    HadrGateway,
    WinRmConnectionProvider,
    WinRmServiceController,
)

logger = logging.getLogger(__name__)

HADR = "hadr"
AGENT_JOB = "agent_job"


class Container:
    """
    Dependency injection container.

    Manages the creation of application services and infrastructure components.
    """

    def __init__(self, config_dir: Optional[Path] = None, settings: Optional[AdminSettings] = None):
        """
        Initialize the container.

        Args:
            config_dir: Base directory for configuration files
            settings: Settings override (skips loading admin_config.json)
        """
        self.config_repository = ConfigRepository(config_dir)
        self._settings = settings
        self._credential_manager: Optional[CredentialManager] = None
        self.diagnostics = LoggingDiagnostics()

    @property
    def settings(self) -> AdminSettings:
        """Admin settings, loaded lazily from the config directory."""
        if self._settings is None:
            self._settings = self.config_repository.load_settings()
        return self._settings

    @property
    def credential_manager(self) -> CredentialManager:
        if self._credential_manager is None:
            self._credential_manager = CredentialManager(
                self.config_repository.credentials_path(self.settings)
            )
        return self._credential_manager

    def resolve_credential(self, ref: Optional[str]) -> Optional[Credential]:
        """Resolve a credential reference, falling back to the configured default."""
        return self.credential_manager.load_credential(ref or self.settings.credential_ref)

    def mutator(
        self,
        kind: str,
        approval: Optional[ApprovalGate] = None,
        credential: Optional[Credential] = None,
    ) -> GuardedStateMutator:
        """Build the guarded state mutator for one mutation kind."""
        services = WinRmServiceController(self.settings, credential)
        if kind == HADR:
            connections = WinRmConnectionProvider(self.settings)
            gateway = HadrGateway()
        elif kind == AGENT_JOB:
            connections, gateway = self._sql_components()
        else:
            raise ValueError(f"Unknown mutation kind: {kind}")

        return GuardedStateMutator(
            connections=connections,
            reader=gateway,
            applier=gateway,
            services=services,
            approval=approval or AutoApproveGate(),
            diagnostics=self.diagnostics,
        )

    def batch_runner(
        self,
        kind: str,
        approval: Optional[ApprovalGate] = None,
        credential: Optional[Credential] = None,
        max_workers: Optional[int] = None,
    ) -> BatchRunner:
        return BatchRunner(
            self.mutator(kind, approval, credential),
            max_workers=max_workers or self.settings.max_workers,
            credential_resolver=lambda _ref: credential,
        )

    def status_service(self, kind: str) -> StatusService:
        if kind == HADR:
            return StatusService(WinRmConnectionProvider(self.settings), HadrGateway(), self.diagnostics)
        if kind == AGENT_JOB:
            connections, gateway = self._sql_components()
            return StatusService(connections, gateway, self.diagnostics)
        raise ValueError(f"Unknown status kind: {kind}")

    def _sql_components(self):
        # pyodbc needs the unixODBC/Windows driver manager; only load it for SQL work
        from mssqladmin.infrastructure.sql import AgentJobGateway, OdbcConnectionProvider

        return OdbcConnectionProvider(self.settings), AgentJobGateway()
