"""Tests for the batch runner and the read-only status service."""

import pytest

from fakes import FakeConnectionProvider, FakeGateway, hadr_states, job_states
from mssqladmin.application.batch import BatchRunner
from mssqladmin.application.mutator import GuardedStateMutator
from mssqladmin.application.policies import AgentJobRemovalPolicy, HadrTogglePolicy
from mssqladmin.application.status_service import StatusService
from mssqladmin.domain.enums import ErrorCategory, ResultStatus
from mssqladmin.domain.errors import RequestValidationError, StateReadError, TargetConnectionError
from mssqladmin.domain.models import HadrRequest, JobKey, JobRemovalRequest
from mssqladmin.domain.targets import parse_targets


def make_runner(journal, connections, services, approval, diagnostics, states, max_workers=1):
    gateway = FakeGateway(journal, states)
    mutator = GuardedStateMutator(connections, gateway, gateway, services, approval, diagnostics)
    return BatchRunner(mutator, max_workers=max_workers, credential_resolver=lambda ref: ref)


class TestBatchRunner:
    """Multi-target runs."""

    def test_connection_failure_isolated_and_order_kept(
        self, journal, services, approval, diagnostics
    ):
        connections = FakeConnectionProvider(journal, fail_hosts={"sql02"})
        runner = make_runner(journal, connections, services, approval, diagnostics, hadr_states(False))
        targets = parse_targets(["sql01", "sql02", "sql03\\DEV1"])

        results = runner.run(targets, HadrRequest(), HadrTogglePolicy())

        assert [r.full_name for r in results] == ["sql01", "sql02", "sql03\\DEV1"]
        assert results[0].applied and results[2].applied
        assert results[1].has_error(ErrorCategory.CONNECTION)
        assert not results[1].applied

    def test_parallel_results_in_input_order(self, journal, services, approval, diagnostics):
        connections = FakeConnectionProvider(journal, fail_hosts={"sql03"})
        runner = make_runner(
            journal, connections, services, approval, diagnostics, hadr_states(False), max_workers=4
        )
        targets = parse_targets([f"sql0{i}" for i in range(1, 7)])

        results = runner.run(targets, HadrRequest(), HadrTogglePolicy())

        assert [r.host for r in results] == [t.host for t in targets]
        assert [r.ok for r in results] == [True, True, False, True, True, True]

    def test_validation_before_any_target(self, journal, connections, services, approval, diagnostics):
        runner = make_runner(journal, connections, services, approval, diagnostics, job_states(None, False))

        with pytest.raises(RequestValidationError):
            runner.run(parse_targets(["sql01"]), JobRemovalRequest(), AgentJobRemovalPolicy())

        assert journal == []

    def test_credential_resolved_once_and_passed(
        self, journal, connections, services, approval, diagnostics
    ):
        runner = make_runner(journal, connections, services, approval, diagnostics, hadr_states(False))

        runner.run(parse_targets(["sql01", "sql02"]), HadrRequest(credential_ref="ops"), HadrTogglePolicy())

        assert [c[2] for c in journal.calls("connect")] == ["ops", "ops"]

    def test_unexpected_exception_becomes_internal_error(
        self, journal, connections, services, approval, diagnostics
    ):
        runner = make_runner(journal, connections, services, approval, diagnostics, [RuntimeError("boom")])

        results = runner.run(parse_targets(["sql01"]), HadrRequest(), HadrTogglePolicy())

        assert results[0].has_error(ErrorCategory.INTERNAL)
        assert results[0].status == ResultStatus.FAILED

    def test_invalid_worker_count(self, journal, connections, services, approval, diagnostics):
        with pytest.raises(ValueError):
            make_runner(journal, connections, services, approval, diagnostics, hadr_states(False), 0)


class TestStatusService:
    """Read-only status queries."""

    def test_hadr_status(self, journal, diagnostics):
        connections = FakeConnectionProvider(journal)
        service = StatusService(connections, FakeGateway(journal, hadr_states(True)), diagnostics)

        results = service.hadr_status(parse_targets(["sql01", "sql01\\DEV1"]))

        assert [r.prior_value for r in results] == [True, True]
        assert all(r.status == ResultStatus.UNCHANGED for r in results)
        assert journal.calls("apply_change") == []
        assert [c[1].service_name for c in journal.calls("read_state")] == ["MSSQLSERVER", "MSSQL$DEV1"]
        assert all(s.closed for s in connections.sessions)

    def test_job_status_missing_job(self, journal, diagnostics):
        service = StatusService(
            FakeConnectionProvider(journal), FakeGateway(journal, job_states(None, False)), diagnostics
        )

        results = service.job_status(parse_targets(["sql01"]), "NightlyETL")

        assert results[0].prior_value is None
        assert results[0].ok
        assert journal.calls("read_state") == [("read_state", JobKey(job_name="NightlyETL"))]

    def test_connection_and_read_errors(self, journal, diagnostics):
        connections = FakeConnectionProvider(journal, fail_hosts={"sql02"})
        service = StatusService(
            connections, FakeGateway(journal, [StateReadError("WMI unavailable")]), diagnostics
        )

        results = service.hadr_status(parse_targets(["sql01", "sql02"]))

        assert results[0].has_error(ErrorCategory.READ)
        assert results[1].has_error(ErrorCategory.CONNECTION)
        assert connections.sessions[0].closed

    def test_read_timeout_does_not_abort_later_targets(self, journal, diagnostics):
        gateway = FakeGateway(journal, [TargetConnectionError("Query timeout expired"), *hadr_states(True)])
        service = StatusService(FakeConnectionProvider(journal), gateway, diagnostics)

        results = service.hadr_status(parse_targets(["sql01", "sql02"]))

        assert results[0].has_error(ErrorCategory.CONNECTION)
        assert results[1].ok
        assert results[1].prior_value is True
