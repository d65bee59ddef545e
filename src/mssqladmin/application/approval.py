"""
Approval gates for the confirmation step.
"""

from __future__ import annotations

import logging
import threading

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

logger = logging.getLogger(__name__)


class AutoApproveGate:
    """Approves everything. Default for unattended and batch use."""

    def confirm(self, description: str) -> bool:
        logger.debug("Auto-approved: %s", description)
        return True


class RejectAllGate:
    """Declines everything. Used for what-if runs."""

    def confirm(self, description: str) -> bool:
        logger.info("What-if: would perform: %s", description)
        return False


class ConsoleApprovalGate:
    """
    Interactive yes/no prompt on the console.

    Prompts are serialized so parallel targets never interleave questions.
    """

    def __init__(self, console: Console | None = None, default: bool = False) -> None:
        self.console = console or Console()
        self.default = default
        self._lock = threading.Lock()

    def confirm(self, description: str) -> bool:
        with self._lock:
            answer = Confirm.ask(
                f"[yellow]⚠️  {escape(description)}[/yellow]\n   Proceed?",
                console=self.console,
                default=self.default,
            )
        logger.info("Approval %s: %s", "granted" if answer else "declined", description)
        return answer
