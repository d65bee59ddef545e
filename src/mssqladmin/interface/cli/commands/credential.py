"""
Credential Command CLI - Store credentials for SQL and WinRM authentication.
"""

import logging

import typer

from mssqladmin.domain.config import Credential
from mssqladmin.interface.cli.common import console, fail_validation, get_container

logger = logging.getLogger(__name__)

credential_app = typer.Typer(
    name="credential",
    help="🔐 Stored credential management",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@credential_app.command("add")
def credential_add(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Reference name used with --credential."),
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Login or DOMAIN\\user."),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password."
    ),
    plain: bool = typer.Option(False, "--plain", help="Store without encryption."),
):
    """
    Save a credential under REF.

    Encrypted with MSSQLADMIN_MASTER_PASSWORD unless --plain is given.
    """
    container = get_container(ctx)
    try:
        path = container.credential_manager.save_credential(
            ref, Credential(username=username, password=password), encrypt=not plain
        )
    except ValueError as e:
        fail_validation(e)
        return
    console.print(f"[green]✅ Credential '{ref}' saved to {path}[/green]")
