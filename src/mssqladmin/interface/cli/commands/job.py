"""
Job Command CLI - SQL Server Agent job removal and lookup.
"""

import logging
from typing import List, Optional
from uuid import UUID

import typer
from rich.markup import escape

from mssqladmin.application.container import AGENT_JOB
from mssqladmin.application.policies import AgentJobRemovalPolicy
from mssqladmin.domain.errors import RequestValidationError
from mssqladmin.domain.models import JobRemovalRequest
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

job_app = typer.Typer(
    name="job",
    help="🗓️ SQL Server Agent job management",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

SQL_INSTANCE_HELP = "SQL Server instance (host, host\\instance or host,port). Repeatable."


@job_app.command("remove")
def job_remove(  # pylint: disable=too-many-arguments,too-many-locals
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(None, "--sql-instance", "-S", help=SQL_INSTANCE_HELP),
    job: Optional[str] = typer.Option(None, "--job", "-j", help="Job name."),
    job_id: Optional[UUID] = typer.Option(None, "--job-id", help="Job identifier (uniqueidentifier)."),
    keep_history: bool = typer.Option(False, "--keep-history", help="Do not purge the job history first."),
    keep_unused_schedule: bool = typer.Option(
        False, "--keep-unused-schedule", help="Keep schedules no other job references."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    what_if: bool = typer.Option(False, "--what-if", help="Show what would change; decline every change."),
    credential: Optional[str] = typer.Option(None, "--credential", help="Stored credential reference."),
    parallel: Optional[int] = typer.Option(None, "--parallel", min=1, max=20, help="Targets processed in parallel."),
):
    """
    Remove a SQL Server Agent job by name or id.

    Instances where the job does not exist are reported as not found.
    Job removal takes effect immediately and never restarts services,
    so there is no --force option.
    """
    container = get_container(ctx)
    policy = AgentJobRemovalPolicy()
    try:
        targets = resolve_targets(container, sql_instance)
        request = JobRemovalRequest(
            job_name=job,
            job_id=job_id,
            keep_history=keep_history,
            keep_unused_schedule=keep_unused_schedule,
            confirm=not yes or what_if,
            idempotency=container.settings.idempotency,
            credential_ref=credential or container.settings.credential_ref,
        )
        policy.validate(request)
        resolved = container.resolve_credential(request.credential_ref)
        runner = container.batch_runner(
            AGENT_JOB, choose_approval(yes, what_if), resolved, parallel
        )
    except (RequestValidationError, ValueError, FileNotFoundError) as e:
        fail_validation(e)
        return

    console.print(f"[blue]🗓️  Removing job '{escape(request.job_label)}' from {len(targets)} instance(s)[/blue]")

    with cancellation_on_interrupt() as cancel:
        results = runner.run(targets, request, policy, cancel)

    formatter = ResultFormatter(console)
    formatter.display_results(results, "Agent Job Removal", "Job")
    formatter.display_warnings(container.diagnostics.warnings())
    raise typer.Exit(exit_code(results))


@job_app.command("status")
def job_status(
    ctx: typer.Context,
    job: str = typer.Option(..., "--job", "-j", help="Job name."),
    sql_instance: Optional[List[str]] = typer.Option(None, "--sql-instance", "-S", help=SQL_INSTANCE_HELP),
    credential: Optional[str] = typer.Option(None, "--credential", help="Stored credential reference."),
):
    """Show whether a job exists on each instance."""
    container = get_container(ctx)
    try:
        targets = resolve_targets(container, sql_instance)
        resolved = container.resolve_credential(credential)
    except (RequestValidationError, ValueError, FileNotFoundError) as e:
        fail_validation(e)
        return

    results = container.status_service(AGENT_JOB).job_status(targets, job, resolved)
    ResultFormatter(console).display_results(results, "Agent Job Status", "Job")
    raise typer.Exit(exit_code(results))
