"""
Diagnostics sink writing structured workflow events to logging.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("mssqladmin.diagnostics")


@dataclass(frozen=True)
class DiagnosticEvent:
    level: int
    event: str
    target: str | None
    fields: dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        parts = [f"{k}={v}" for k, v in self.fields.items() if k != "detail"]
        detail = self.fields.get("detail")
        text = f"[{self.target}] {self.event}" if self.target else self.event
        if parts:
            text = f"{text} {' '.join(parts)}"
        if detail:
            text = f"{text}: {detail}"
        return text


class LoggingDiagnostics:
    """
    DiagnosticsSink that logs each event and keeps it for the CLI summary.

    Thread-safe; the batch runner may emit from several workers.
    """

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self.logger = logger_ or logger
        self.events: list[DiagnosticEvent] = []
        self._lock = threading.Lock()

    def emit(self, level: int, event: str, target: str | None = None, **fields: Any) -> None:
        record = DiagnosticEvent(level=level, event=event, target=target, fields=fields)
        with self._lock:
            self.events.append(record)
        self.logger.log(level, "%s", record.render(), extra={"event": event, "target": target})

    def warnings(self) -> list[DiagnosticEvent]:
        with self._lock:
            return [e for e in self.events if e.level == logging.WARNING]
