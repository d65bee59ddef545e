"""
Windows service names of a SQL Server instance.

The default instance uses reserved names; every named instance uses the
prefix + instance name template. A wrong name makes Stop-Service /
Start-Service target nothing, so these must match exactly.
"""

from __future__ import annotations

from mssqladmin.domain.models import Target

DEFAULT_ENGINE_SERVICE = "MSSQLSERVER"
DEFAULT_AGENT_SERVICE = "SQLSERVERAGENT"
ENGINE_SERVICE_PREFIX = "MSSQL$"
AGENT_SERVICE_PREFIX = "SQLAgent$"


def engine_service_name(target: Target) -> str:
    """Database engine service name for the target instance."""
    if target.is_default_instance:
        return DEFAULT_ENGINE_SERVICE
    return f"{ENGINE_SERVICE_PREFIX}{target.instance_name}"


def agent_service_name(target: Target) -> str:
    """SQL Server Agent service name for the target instance."""
    if target.is_default_instance:
        return DEFAULT_AGENT_SERVICE
    return f"{AGENT_SERVICE_PREFIX}{target.instance_name}"


def restart_service_names(target: Target) -> list[str]:
    """Services restarted by a cascade: agent first, then engine."""
    return [agent_service_name(target), engine_service_name(target)]
