"""
CLI result formatters.

Separates display logic from command logic.
"""

import logging
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mssqladmin.domain.enums import ResultStatus
from mssqladmin.domain.models import MutationResult
from mssqladmin.infrastructure.diagnostics import DiagnosticEvent

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    ResultStatus.APPLIED: "[green]✅ Applied[/green]",
    ResultStatus.SKIPPED: "[cyan]⏭  Skipped[/cyan]",
    ResultStatus.REJECTED: "[yellow]✋ Rejected[/yellow]",
    ResultStatus.NOT_FOUND: "[yellow]❔ Not found[/yellow]",
    ResultStatus.CANCELLED: "[yellow]⏹  Cancelled[/yellow]",
    ResultStatus.UNCHANGED: "[blue]ℹ️  Read[/blue]",
    ResultStatus.FAILED: "[red]❌ Failed[/red]",
}


def _value(value: object) -> str:
    return "-" if value is None else str(value)


class ResultFormatter:
    """Renders MutationResults as a rich table plus summary."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def display_results(self, results: List[MutationResult], title: str, value_label: str) -> None:
        table = Table(title=title)
        table.add_column("Instance", style="cyan", no_wrap=True)
        table.add_column(f"Prior {value_label}", style="blue")
        table.add_column(f"New {value_label}", style="blue")
        table.add_column("Status")
        table.add_column("Applied", justify="center")
        table.add_column("Restarted", justify="center")
        table.add_column("Errors", style="red")

        for result in results:
            table.add_row(
                escape(result.full_name),
                escape(_value(result.prior_value)),
                escape(_value(result.new_value)),
                STATUS_STYLES.get(result.status, result.status.value),
                "✅" if result.applied else "-",
                "✅" if result.cascade_applied else "-",
                escape("\n".join(f"{e.category.value}: {e.message}" for e in result.errors)),
            )

        self.console.print(table)
        ok = sum(1 for r in results if r.ok)
        self.console.print(f"\n[blue]📊 Summary: {ok}/{len(results)} instance(s) without errors[/blue]")

    def display_warnings(self, warnings: List[DiagnosticEvent]) -> None:
        for event in warnings:
            self.console.print(f"[yellow]⚠️  {escape(event.render())}[/yellow]")
