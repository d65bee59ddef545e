"""
Remote PowerShell (pywinrm) infrastructure: client, sessions, HADR gateway
and service controller.
"""

from mssqladmin.infrastructure.psremote.client import (
    ConnectionConfig,
    PSRemoteClient,
    PSRemoteResult,
)
from mssqladmin.infrastructure.psremote.hadr_gateway import HadrGateway
from mssqladmin.infrastructure.psremote.service_controller import WinRmServiceController
from mssqladmin.infrastructure.psremote.session import RemoteSession, WinRmConnectionProvider

__all__ = [
    "ConnectionConfig",
    "HadrGateway",
    "PSRemoteClient",
    "PSRemoteResult",
    "RemoteSession",
    "WinRmConnectionProvider",
    "WinRmServiceController",
]
