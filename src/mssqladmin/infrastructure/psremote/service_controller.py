"""
Windows service stop/start for the restart cascade.
"""

from __future__ import annotations

import logging

from mssqladmin.domain.config import AdminSettings, Credential
from mssqladmin.domain.errors import CascadeError, TargetConnectionError
from mssqladmin.domain.models import Target
from mssqladmin.infrastructure.psremote.session import RemoteSession, build_client, ps_quote

logger = logging.getLogger(__name__)


def build_service_script(action: str, names: list[str], timeout: int) -> str:
    """
    Stop or start services one by one, in the given order, waiting for each.

    Prints {"services": [{"name": ..., "status": ...}]}.
    """
    if action not in ("stop", "start"):
        raise ValueError(f"Unknown service action: {action}")
    wanted = "Stopped" if action == "stop" else "Running"
    command = "Stop-Service -InputObject $svc -Force" if action == "stop" else "Start-Service -InputObject $svc"
    name_list = ", ".join(ps_quote(n) for n in names)
    return f"""
$ErrorActionPreference = 'Stop'
$timeout = New-TimeSpan -Seconds {int(timeout)}
$out = @()
foreach ($name in @({name_list})) {{
    $svc = Get-Service -Name $name
    if ($svc.Status -ne '{wanted}') {{
        {command}
        $svc.WaitForStatus('{wanted}', $timeout)
    }}
    $svc.Refresh()
    $out += @{{ name = $svc.Name; status = [string]$svc.Status }}
}}
@{{ services = $out }} | ConvertTo-Json -Compress -Depth 3
"""


class WinRmServiceController:
    """
    ServiceController over WinRM.

    Opens its own session per call; the cascade runs after the mutation
    session may already have been used for minutes.
    """

    def __init__(self, settings: AdminSettings, credential: Credential | None = None) -> None:
        self.settings = settings
        self.credential = credential

    def stop_services(self, host: str, instance: str, names: list[str]) -> None:
        self._run("stop", host, instance, names)

    def start_services(self, host: str, instance: str, names: list[str]) -> None:
        self._run("start", host, instance, names)

    def _run(self, action: str, host: str, instance: str, names: list[str]) -> None:
        target = Target(host=host, instance_name=instance)
        logger.info("%s services on %s: %s", action.capitalize(), host, ", ".join(names))
        client = build_client(host, self.settings, self.credential)
        if not client.connect():
            raise CascadeError(f"Cannot reach {host} to {action} services", target=target.full_name)
        session = RemoteSession(target=target, client=client)
        try:
            data = session.run_json(
                build_service_script(action, names, self.settings.service_timeout),
                CascadeError,
            )
        except TargetConnectionError as e:
            raise CascadeError(f"Service {action} failed: {e.message}", target=target.full_name) from e
        finally:
            session.close()

        services = data.get("services") or []
        if isinstance(services, dict):
            services = [services]
        logger.debug("Service %s on %s: %s", action, host, services)

        wanted = "Stopped" if action == "stop" else "Running"
        statuses = {str(s.get("name", "")).lower(): s.get("status") for s in services if isinstance(s, dict)}
        wrong = [f"{n}={statuses.get(n.lower(), 'missing')}" for n in names if statuses.get(n.lower()) != wanted]
        if wrong:
            raise CascadeError(
                f"Service {action} left services not {wanted}: {', '.join(wrong)}",
                target=target.full_name,
            )
