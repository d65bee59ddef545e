"""Tests for diagnostics, logging setup and the approval gates."""

import logging
from unittest.mock import patch

from mssqladmin.application.approval import AutoApproveGate, ConsoleApprovalGate, RejectAllGate
from mssqladmin.infrastructure.diagnostics import DiagnosticEvent, LoggingDiagnostics
from mssqladmin.infrastructure.logging_config import ColoredFormatter, setup_logging


class TestLoggingDiagnostics:
    def test_events_logged_and_kept(self, caplog):
        sink = LoggingDiagnostics()

        with caplog.at_level(logging.INFO, logger="mssqladmin.diagnostics"):
            sink.emit(logging.INFO, "mutated", "sql01", policy="hadr")
            sink.emit(logging.WARNING, "restart_required", "sql01", detail="restart needed")

        assert [e.event for e in sink.events] == ["mutated", "restart_required"]
        assert [e.event for e in sink.warnings()] == ["restart_required"]
        assert "[sql01] mutated policy=hadr" in caplog.text
        assert "[sql01] restart_required: restart needed" in caplog.text

    def test_render_without_target(self):
        event = DiagnosticEvent(level=logging.INFO, event="status", target=None, fields={"value": True})
        assert event.render() == "status value=True"


class TestLoggingSetup:
    def test_file_handler_at_debug(self, tmp_path):
        log_file = tmp_path / "logs" / "admin.log"
        root = logging.getLogger()
        saved = root.handlers[:]
        try:
            setup_logging(logging.WARNING, str(log_file))
            logging.getLogger("mssqladmin.tests").debug("visible in file only")
            for handler in root.handlers:
                handler.flush()
            assert "visible in file only" in log_file.read_text(encoding="utf-8")
            assert logging.getLogger("winrm").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved

    def test_colored_formatter_restores_record(self):
        formatter = ColoredFormatter("%(levelname)s %(name)s %(message)s", use_colors=True)
        record = logging.LogRecord("mssqladmin", logging.ERROR, __file__, 1, "boom", None, None)

        text = formatter.format(record)

        assert "\033[" in text
        assert record.levelname == "ERROR"
        assert record.name == "mssqladmin"


class TestApprovalGates:
    def test_auto_and_reject(self):
        assert AutoApproveGate().confirm("Disabling HADR on sql01") is True
        assert RejectAllGate().confirm("Disabling HADR on sql01") is False

    def test_console_gate_asks(self):
        with patch("mssqladmin.application.approval.Confirm.ask", return_value=True) as ask:
            assert ConsoleApprovalGate().confirm("Removing agent job 'NightlyETL' from sql01") is True

        prompt = ask.call_args[0][0]
        assert "NightlyETL" in prompt
        assert ask.call_args[1]["default"] is False
