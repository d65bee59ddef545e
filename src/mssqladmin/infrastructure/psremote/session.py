"""
Remote PowerShell sessions.

Wraps PSRemoteClient as the explicit Session value handed to gateways and
translates transport failures into the mssqladmin error taxonomy.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from mssqladmin.domain.errors import AdminError, TargetConnectionError
from mssqladmin.domain.models import Target
from mssqladmin.domain.config import AdminSettings, Credential
from mssqladmin.infrastructure.psremote.client import (
    ConnectionConfig,
    PSRemoteClient,
    PSRemoteResult,
)

logger = logging.getLogger(__name__)


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def parse_json_output(output: str) -> dict[str, Any]:
    """
    Find the JSON object in script output (may have other text before/after).

    Raises:
        ValueError: no JSON object in output
    """
    output = output.strip()
    json_start = output.find("{")
    json_end = output.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        raise ValueError(f"No JSON object in output: {output[:200]!r}")
    return json.loads(output[json_start:json_end])


def build_client(host: str, settings: AdminSettings, credential: Credential | None) -> PSRemoteClient:
    config = ConnectionConfig(
        hostname=host,
        username=credential.username if credential else None,
        password=credential.get_password() if credential else None,
        port_http=settings.winrm_port_http,
        port_https=settings.winrm_port_https,
        operation_timeout_sec=settings.service_timeout,
        allow_insecure=settings.winrm_allow_insecure,
    )
    return PSRemoteClient(config)


@dataclass
class RemoteSession:
    """Open remote PowerShell session to one target's host."""

    target: Target
    client: PSRemoteClient

    def run_json(self, script: str, error_type: type[AdminError]) -> dict[str, Any]:
        """
        Run a script that prints one JSON object and return it parsed.

        Raises:
            TargetConnectionError: transport failure or timeout
            error_type: the script failed or printed no JSON
        """
        result = self.client.run_ps(script)
        self._raise_for_transport(result)
        if not result.success:
            detail = (result.stderr or result.error or result.stdout).strip()
            raise error_type(_first_line(detail) or "PowerShell script failed", target=self.target.full_name)
        try:
            return parse_json_output(result.stdout)
        except ValueError as e:
            raise error_type(str(e), target=self.target.full_name) from e

    def _raise_for_transport(self, result: PSRemoteResult) -> None:
        if result.timed_out:
            raise TargetConnectionError(result.error, target=self.target.full_name)
        if not result.success and result.return_code == -1 and result.error:
            raise TargetConnectionError(result.error, target=self.target.full_name)

    def close(self) -> None:
        self.client.close()


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


class WinRmConnectionProvider:
    """Opens RemoteSessions over WinRM (or local PowerShell for localhost)."""

    def __init__(self, settings: AdminSettings) -> None:
        self.settings = settings

    def connect(self, target: Target, credential: Credential | None) -> RemoteSession:
        client = build_client(target.host, self.settings, credential)
        if not client.connect():
            tried = ", ".join(f"{a['transport']}/{a['auth']}" for a in client.attempts)
            raise TargetConnectionError(
                f"WinRM connection failed (tried: {tried or 'none'})",
                target=target.full_name,
            )
        logger.debug("WinRM session open to %s", target.host)
        return RemoteSession(target=target, client=client)
