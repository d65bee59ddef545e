"""
Helpers shared by CLI commands.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from mssqladmin.application.approval import AutoApproveGate, ConsoleApprovalGate, RejectAllGate
from mssqladmin.application.container import Container
from mssqladmin.application.ports import ApprovalGate, CancellationToken
from mssqladmin.domain.errors import RequestValidationError
from mssqladmin.domain.models import MutationResult, Target
from mssqladmin.domain.targets import parse_targets

logger = logging.getLogger(__name__)
console = Console()

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_VALIDATION = 2


def build_container(config_dir: Optional[Path]) -> Container:
    """Factory for the DI container (patched in tests)."""
    return Container(config_dir)


def get_container(ctx: typer.Context) -> Container:
    obj = ctx.ensure_object(dict)
    if "container" not in obj:
        obj["container"] = build_container(obj.get("config_dir"))
    return obj["container"]


def resolve_targets(container: Container, sql_instances: Optional[List[str]]) -> List[Target]:
    """CLI targets, else targets from admin_config.json."""
    ids = list(sql_instances or []) or list(container.settings.targets)
    if not ids:
        raise RequestValidationError("No SQL instance given (use -S/--sql-instance or config targets)")
    return parse_targets(ids)


def choose_approval(yes: bool, what_if: bool) -> ApprovalGate:
    """
    --what-if declines everything, --yes skips prompting, and an
    unattended (non-interactive) session auto-approves.
    """
    if what_if:
        return RejectAllGate()
    if yes or not sys.stdin.isatty():
        return AutoApproveGate()
    return ConsoleApprovalGate(console)


@contextmanager
def cancellation_on_interrupt() -> Iterator[CancellationToken]:
    """
    First Ctrl+C requests cooperative cancellation; a second one aborts.
    """
    token = CancellationToken()

    def handler(signum, frame):  # pylint: disable=unused-argument
        if token.cancelled:
            raise KeyboardInterrupt
        token.cancel()
        console.print("[yellow]⏹  Cancelling after the current step (Ctrl+C again to abort)[/yellow]")

    try:
        previous = signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not in the main thread
        yield token
        return
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def exit_code(results: List[MutationResult]) -> int:
    return EXIT_OK if all(r.ok for r in results) else EXIT_ERRORS


def fail_validation(error: Exception) -> None:
    logger.error("Validation failed: %s", error)
    console.print(f"[red]❌ Error:[/red] {escape(str(error))}")
    raise typer.Exit(EXIT_VALIDATION)
