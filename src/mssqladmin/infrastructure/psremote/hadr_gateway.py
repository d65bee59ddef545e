"""
HADR flag gateway.

Reads and changes the configured IsHadrEnabled flag of the engine service
through the SQL Server WMI provider (SMO WMI ManagedComputer) on the
target host. The running value (SERVERPROPERTY('IsHadrEnabled')) lags
until the engine restarts, so the configured value is what gets verified.
"""

from __future__ import annotations

import logging

from mssqladmin.domain.errors import MutationError, StateReadError
from mssqladmin.domain.models import ChangeSpec, HadrKey, HadrState, SetHadrFlag
from mssqladmin.infrastructure.psremote.session import RemoteSession, ps_quote

logger = logging.getLogger(__name__)

_LOAD_SMO_WMI = """
$ErrorActionPreference = 'Stop'
if (-not [System.Reflection.Assembly]::LoadWithPartialName('Microsoft.SqlServer.SqlWmiManagement')) {
    Import-Module SqlServer -ErrorAction Stop
}
$wmi = New-Object Microsoft.SqlServer.Management.Smo.Wmi.ManagedComputer $env:COMPUTERNAME
$svc = $wmi.Services | Where-Object { $_.Name -eq $ServiceName }
if (-not $svc) { throw "SQL Server service '$ServiceName' not found on $env:COMPUTERNAME" }
"""

_REPORT = """
@{ service = $svc.Name; isHadrEnabled = [bool]$svc.IsHadrEnabled } | ConvertTo-Json -Compress
"""


def build_read_script(service_name: str) -> str:
    return f"$ServiceName = {ps_quote(service_name)}\n{_LOAD_SMO_WMI}{_REPORT}"


def build_set_script(service_name: str, flag: int) -> str:
    return (
        f"$ServiceName = {ps_quote(service_name)}\n{_LOAD_SMO_WMI}"
        f"$svc.ChangeHadrServiceSetting({int(flag)})\n"
        f"$svc.Refresh()\n{_REPORT}"
    )


class HadrGateway:
    """StateReader + ChangeApplier for the HADR service flag."""

    def read_state(self, session: RemoteSession, key: HadrKey) -> HadrState:
        data = session.run_json(build_read_script(key.service_name), StateReadError)
        if "isHadrEnabled" not in data:
            raise StateReadError(
                f"Unexpected output reading HADR state: {data}",
                target=session.target.full_name,
            )
        state = HadrState(enabled=bool(data["isHadrEnabled"]))
        logger.debug("%s IsHadrEnabled=%s", session.target, state.enabled)
        return state

    def apply_change(self, session: RemoteSession, change: ChangeSpec) -> None:
        if not isinstance(change, SetHadrFlag):
            raise MutationError(
                f"HadrGateway cannot apply {type(change).__name__}",
                target=session.target.full_name,
            )
        logger.info(
            "Setting IsHadrEnabled=%d on %s (%s)",
            change.flag, session.target, change.service_name,
        )
        session.run_json(build_set_script(change.service_name, change.flag), MutationError)
