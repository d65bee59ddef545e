"""
HADR Command CLI - Enable, disable and inspect the HADR service flag.
"""

import logging
from typing import List, Optional

import typer

from mssqladmin.application.container import HADR
from mssqladmin.application.policies import HadrTogglePolicy
from mssqladmin.domain.enums import IdempotencyPolicy
from mssqladmin.domain.errors import RequestValidationError
from mssqladmin.domain.models import HadrRequest
from mssqladmin.interface.cli.common import (
    cancellation_on_interrupt,
    choose_approval,
    console,
    exit_code,
    fail_validation,
    get_container,
    resolve_targets,
)
from mssqladmin.interface.cli.formatters import ResultFormatter

logger = logging.getLogger(__name__)

hadr_app = typer.Typer(
    name="hadr",
    help="🛡️ Always On (HADR) service flag management",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

SQL_INSTANCE_HELP = "SQL Server instance (host, host\\instance or host,port). Repeatable."


def _toggle(  # pylint: disable=too-many-arguments
    ctx: typer.Context,
    enabled: bool,
    sql_instance: Optional[List[str]],
    force: bool,
    yes: bool,
    what_if: bool,
    skip_if_satisfied: bool,
    credential: Optional[str],
    parallel: Optional[int],
) -> None:
    container = get_container(ctx)
    try:
        targets = resolve_targets(container, sql_instance)
        idempotency = (
            IdempotencyPolicy.SKIP_IF_SATISFIED if skip_if_satisfied else container.settings.idempotency
        )
        request = HadrRequest(
            enabled=enabled,
            force=force,
            confirm=not yes or what_if,
            idempotency=idempotency,
            credential_ref=credential or container.settings.credential_ref,
        )
        resolved = container.resolve_credential(request.credential_ref)
        runner = container.batch_runner(
            HADR, choose_approval(yes, what_if), resolved, parallel
        )
    except (RequestValidationError, ValueError, FileNotFoundError) as e:
        fail_validation(e)
        return

    verb = "Enabling" if enabled else "Disabling"
    console.print(f"[blue]🛡️  {verb} HADR on {len(targets)} instance(s)[/blue]")

    with cancellation_on_interrupt() as cancel:
        results = runner.run(targets, request, HadrTogglePolicy(), cancel)

    formatter = ResultFormatter(console)
    formatter.display_results(results, "HADR Results", "IsHadrEnabled")
    formatter.display_warnings(container.diagnostics.warnings())
    raise typer.Exit(exit_code(results))


@hadr_app.command("disable")
def hadr_disable(  # pylint: disable=too-many-arguments
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(None, "--sql-instance", "-S", help=SQL_INSTANCE_HELP),
    force: bool = typer.Option(False, "--force", help="Restart the SQL Server services after the change."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    what_if: bool = typer.Option(False, "--what-if", help="Show what would change; decline every change."),
    skip_if_disabled: bool = typer.Option(
        False, "--skip-if-disabled", help="Skip instances where HADR is already disabled."
    ),
    credential: Optional[str] = typer.Option(None, "--credential", help="Stored credential reference."),
    parallel: Optional[int] = typer.Option(None, "--parallel", min=1, max=20, help="Targets processed in parallel."),
):
    """
    Disable Always On Availability Groups (IsHadrEnabled = 0).

    The flag is read at service startup; use --force to restart the
    Agent and Engine services so the change takes effect.
    """
    _toggle(ctx, False, sql_instance, force, yes, what_if, skip_if_disabled, credential, parallel)


@hadr_app.command("enable")
def hadr_enable(  # pylint: disable=too-many-arguments
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(None, "--sql-instance", "-S", help=SQL_INSTANCE_HELP),
    force: bool = typer.Option(False, "--force", help="Restart the SQL Server services after the change."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    what_if: bool = typer.Option(False, "--what-if", help="Show what would change; decline every change."),
    skip_if_enabled: bool = typer.Option(
        False, "--skip-if-enabled", help="Skip instances where HADR is already enabled."
    ),
    credential: Optional[str] = typer.Option(None, "--credential", help="Stored credential reference."),
    parallel: Optional[int] = typer.Option(None, "--parallel", min=1, max=20, help="Targets processed in parallel."),
):
    """Enable Always On Availability Groups (IsHadrEnabled = 1)."""
    _toggle(ctx, True, sql_instance, force, yes, what_if, skip_if_enabled, credential, parallel)


@hadr_app.command("status")
def hadr_status(
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(None, "--sql-instance", "-S", help=SQL_INSTANCE_HELP),
    credential: Optional[str] = typer.Option(None, "--credential", help="Stored credential reference."),
):
    """Show the configured IsHadrEnabled flag of each instance."""
    container = get_container(ctx)
    try:
        targets = resolve_targets(container, sql_instance)
        resolved = container.resolve_credential(credential)
    except (RequestValidationError, ValueError, FileNotFoundError) as e:
        fail_validation(e)
        return

    results = container.status_service(HADR).hadr_status(targets, resolved)
    ResultFormatter(console).display_results(results, "HADR Status", "IsHadrEnabled")
    raise typer.Exit(exit_code(results))
