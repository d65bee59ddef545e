"""
Target Parser micro-component.
Parses target identifiers into hostname, instance and port components.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from mssqladmin.domain.errors import RequestValidationError
from mssqladmin.domain.models import DEFAULT_INSTANCE, Target
from mssqladmin.domain.results import Failure, Result, Success


@dataclass(frozen=True)
class TargetParser:
    """
    Parses target identifiers into Target models.
    Railway-oriented: returns Success with the Target or Failure.
    """

    def parse_target_id(self, target_id: str) -> Result[Target, str]:
        """
        Parse a target ID.
        Supports formats: "host", "host\\instance", "host|instance", "host,port"
        and "host\\instance,port".

        Returns Success with Target or Failure on invalid format.
        """
        if not target_id or not target_id.strip():
            return Failure("Empty or invalid target ID")

        target_id = target_id.strip()
        port: int | None = None

        if "," in target_id:
            target_id, port_text = target_id.rsplit(",", 1)
            if not port_text.strip().isdigit():
                return Failure(f"Invalid port in target: {port_text}")
            port = int(port_text)

        separator = "|" if "|" in target_id else "\\"
        if separator in target_id:
            parts = target_id.split(separator, 1)
            if len(parts) != 2 or not all(p.strip() for p in parts):
                return Failure(f"Invalid target format: {target_id}")
            hostname, instance_name = parts
        else:
            hostname = target_id
            instance_name = DEFAULT_INSTANCE

        # "." and "(local)" are the SQL Server shorthands for this machine
        if hostname.strip().lower() in (".", "(local)"):
            hostname = "localhost"

        try:
            return Success(Target(host=hostname, instance_name=instance_name, port=port))
        except ValidationError as e:
            return Failure(f"Invalid target {target_id}: {e.errors()[0]['msg']}")


def parse_target(target_id: str) -> Target:
    """Parse a target ID or raise RequestValidationError."""
    result = TargetParser().parse_target_id(target_id)
    if isinstance(result, Failure):
        raise RequestValidationError(result.error)
    return result.value


def parse_targets(target_ids: list[str]) -> list[Target]:
    """
    Parse many target IDs, keeping order.

    Host and instance names are case-insensitive, so `sql01`, `SQL01` and
    `sql01\\mssqlserver` are one instance; only the first spelling is kept.
    """
    targets: list[Target] = []
    seen: set[tuple[str, str]] = set()
    for target_id in target_ids:
        target = parse_target(target_id)
        if target.identity not in seen:
            seen.add(target.identity)
            targets.append(target)
    return targets
