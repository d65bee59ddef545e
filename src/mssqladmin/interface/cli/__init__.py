"""
CLI Orchestrator - Main Entry Point

Wires the command groups into one typer app. Each group lives in its own
module under commands/.
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from mssqladmin import __version__
from mssqladmin.infrastructure.logging_config import setup_logging
from mssqladmin.interface.cli.commands.credential import credential_app
from mssqladmin.interface.cli.commands.hadr import hadr_app
from mssqladmin.interface.cli.commands.job import job_app
from mssqladmin.interface.cli.common import EXIT_ERRORS, EXIT_OK, fail_validation, get_container

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="mssqladmin",
    help="🔧 Guarded SQL Server administration (HADR flag, Agent jobs)",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.add_typer(hadr_app, name="hadr")
app.add_typer(job_app, name="job")
app.add_typer(credential_app, name="credential")


def _version(value: bool) -> None:
    if value:
        typer.echo(f"mssqladmin {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="-v for INFO, -vv for DEBUG."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write a DEBUG log to this file."),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Config directory (default: $MSSQLADMIN_CONFIG_DIR or ./config)."
    ),
    version: bool = typer.Option(  # pylint: disable=unused-argument
        False, "--version", callback=_version, is_eager=True, help="Show version and exit."
    ),
):
    """
    🔧 mssqladmin - Guarded SQL Server administration

    Every change follows the same workflow: connect, read the current state,
    ask for approval, apply, optionally restart services, then re-read and
    report what the instance actually holds.

    🎯 **Available Commands:**
    - `mssqladmin hadr disable|enable|status` - Always On service flag
    - `mssqladmin job remove|status` - SQL Server Agent jobs
    - `mssqladmin credential add` - Stored credentials
    """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    setup_logging(level, log_file)

    obj = ctx.ensure_object(dict)
    obj["config_dir"] = config
    container = get_container(ctx)
    try:
        settings = container.settings
    except (ValueError, FileNotFoundError) as e:
        fail_validation(e)
        return
    if not log_file and settings.log_file:
        setup_logging(level, settings.log_file)


def main() -> int:
    """
    Console script entry point. Returns the process exit code.

    typer runs in standalone mode so it renders usage errors and aborts
    itself; every outcome ends in SystemExit.
    """
    try:
        app()
    except SystemExit as e:
        if e.code is None:
            return EXIT_OK
        return e.code if isinstance(e.code, int) else EXIT_ERRORS
    return EXIT_OK
