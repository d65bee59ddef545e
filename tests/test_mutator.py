"""
Tests for the guarded state mutator workflow.

Covers connection failure isolation, the approval gate, mutation ordering,
the restart cascade, re-verification and cooperative cancellation.
"""

import pytest

from fakes import FakeGateway, hadr_states, job_states
from mssqladmin.application.mutator import GuardedStateMutator
from mssqladmin.application.policies import AgentJobRemovalPolicy, HadrTogglePolicy
from mssqladmin.domain.enums import ErrorCategory, IdempotencyPolicy, ResultStatus, WorkflowState
from mssqladmin.domain.errors import (
    CascadeError,
    MutationError,
    RequestValidationError,
    StateReadError,
    TargetConnectionError,
)
from mssqladmin.domain.models import (
    DropJob,
    HadrRequest,
    JobRemovalRequest,
    PurgeJobHistory,
    SetHadrFlag,
)


def make_mutator(connections, gateway, services, approval, diagnostics):
    return GuardedStateMutator(
        connections=connections,
        reader=gateway,
        applier=gateway,
        services=services,
        approval=approval,
        diagnostics=diagnostics,
    )


class TestConnectionFailure:
    """A target that cannot be reached never gets mutated."""

    def test_connection_error_recorded_and_nothing_applied(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        connections.fail_hosts.add("sql01")
        gateway = FakeGateway(journal, hadr_states(True))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(force=True), HadrTogglePolicy())

        assert result.applied is False
        assert result.status == ResultStatus.FAILED
        assert result.has_error(ErrorCategory.CONNECTION)
        assert journal.calls("read_state") == []
        assert journal.calls("apply_change") == []
        assert journal.calls("stop_services") == []
        assert result.trail == [WorkflowState.DISCONNECTED, WorkflowState.REPORTED]

    def test_connection_error_is_emitted(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        connections.fail_hosts.add("sql01")
        mutator = make_mutator(
            connections, FakeGateway(journal, hadr_states(True)), services, approval, diagnostics
        )

        mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        events = [e.event for e in diagnostics.events]
        assert "connection_error" in events
        assert events[-1] == "result"


class TestApprovalGate:
    """The approval gate is consulted before any mutation."""

    def test_rejected_keeps_prior_value(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        approval.answer = False
        gateway = FakeGateway(journal, hadr_states(True))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(force=True), HadrTogglePolicy())

        assert result.applied is False
        assert result.new_value == result.prior_value is True
        assert result.status == ResultStatus.REJECTED
        assert result.ok
        assert journal.calls("apply_change") == []
        assert journal.calls("stop_services") == []
        assert WorkflowState.REJECTED in result.trail

    def test_description_names_transition(
        self, journal, connections, services, approval, diagnostics, named_target
    ):
        mutator = make_mutator(
            connections, FakeGateway(journal, hadr_states(True, False)), services, approval, diagnostics
        )

        mutator.run(named_target, HadrRequest(), HadrTogglePolicy())

        assert approval.descriptions == [
            "Disabling HADR on sql01\\DEV1 (IsHadrEnabled: True -> False)"
        ]

    def test_confirm_false_bypasses_gate(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        approval.answer = False
        mutator = make_mutator(
            connections, FakeGateway(journal, hadr_states(True, False)), services, approval, diagnostics
        )

        result = mutator.run(default_target, HadrRequest(confirm=False), HadrTogglePolicy())

        assert journal.calls("confirm") == []
        assert result.applied is True


class TestHadrToggle:
    """Flag toggle scenarios."""

    def test_scenario_default_instance_without_force(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        """Disable on sql01 without --force: apply once, warn, no restart."""
        gateway = FakeGateway(journal, hadr_states(True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(force=False), HadrTogglePolicy())

        apply_at = journal.index_of("apply_change")
        reads_before_apply = [e for e in journal[:apply_at] if e[0] == "read_state"]
        assert len(reads_before_apply) == 1
        assert journal.calls("apply_change") == [
            ("apply_change", SetHadrFlag(service_name="MSSQLSERVER", enabled=False))
        ]
        assert journal.calls("apply_change")[0][1].flag == 0
        assert journal.calls("stop_services") == []
        assert journal.calls("start_services") == []

        warnings = diagnostics.warnings()
        assert len(warnings) == 1
        assert warnings[0].event == "restart_required"
        assert "manual restart" in warnings[0].fields["detail"]

        assert result.applied is True
        assert result.cascade_applied is False
        assert result.status == ResultStatus.APPLIED
        assert result.prior_value is True
        assert result.new_value is False

    def test_scenario_named_instance_with_force(
        self, journal, connections, services, approval, diagnostics, named_target
    ):
        """Disable on sql01\\DEV1 with --force: stop then start Agent, Engine."""
        gateway = FakeGateway(journal, hadr_states(True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(named_target, HadrRequest(force=True), HadrTogglePolicy())

        expected = ["SQLAgent$DEV1", "MSSQL$DEV1"]
        assert journal.calls("stop_services") == [("stop_services", "sql01", "DEV1", expected)]
        assert journal.calls("start_services") == [("start_services", "sql01", "DEV1", expected)]
        assert journal.index_of("apply_change") < journal.index_of("stop_services")
        assert journal.index_of("stop_services") < journal.index_of("start_services")
        assert result.cascade_applied is True
        assert result.final_state == WorkflowState.REPORTED
        assert WorkflowState.CASCADE_APPLIED in result.trail

    def test_verify_runs_after_cascade(
        self, journal, connections, services, approval, diagnostics, named_target
    ):
        gateway = FakeGateway(journal, hadr_states(True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        mutator.run(named_target, HadrRequest(force=True), HadrTogglePolicy())

        reads = [i for i, e in enumerate(journal) if e[0] == "read_state"]
        assert len(reads) == 2
        assert reads[1] > journal.index_of("start_services")

    def test_new_value_reflects_reality_not_request(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        """The instance still reports True after the change; so does the result."""
        gateway = FakeGateway(journal, hadr_states(True, True))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert result.applied is True
        assert result.new_value is True

    def test_enable_sets_flag_one(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, hadr_states(False, True))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(enabled=True), HadrTogglePolicy())

        change = journal.calls("apply_change")[0][1]
        assert change.flag == 1
        assert result.new_value is True

    def test_session_closed_after_run(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        mutator = make_mutator(
            connections, FakeGateway(journal, hadr_states(True, False)), services, approval, diagnostics
        )

        mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert connections.sessions[0].closed
        assert journal[-1] == ("close", "sql01")


class TestIdempotency:
    """Behavior when the target already has the requested value."""

    def test_always_apply_is_default(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, hadr_states(False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert len(journal.calls("apply_change")) == 1
        assert result.status == ResultStatus.APPLIED

    def test_skip_if_satisfied(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, hadr_states(False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)
        request = HadrRequest(force=True, idempotency=IdempotencyPolicy.SKIP_IF_SATISFIED)

        result = mutator.run(default_target, request, HadrTogglePolicy())

        assert result.status == ResultStatus.SKIPPED
        assert result.applied is False
        assert result.prior_value is False
        assert result.new_value is False
        assert journal.calls("confirm") == []
        assert journal.calls("apply_change") == []
        assert journal.calls("stop_services") == []


class TestFailures:
    """Partial failures are reported on the result, never raised."""

    def test_read_failure_stops_before_mutation(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, [StateReadError("WMI provider unavailable")])
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert result.has_error(ErrorCategory.READ)
        assert result.status == ResultStatus.FAILED
        assert journal.calls("confirm") == []
        assert journal.calls("apply_change") == []

    def test_timeout_during_read_is_connection_error(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, [TargetConnectionError("Operation timed out")])
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert result.has_error(ErrorCategory.CONNECTION)
        assert journal.calls("apply_change") == []

    def test_mutation_failure_skips_cascade_but_verifies(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, hadr_states(True, True))
        gateway.apply_error = MutationError("Access denied")
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(force=True), HadrTogglePolicy())

        assert result.applied is False
        assert result.has_error(ErrorCategory.MUTATION)
        assert result.status == ResultStatus.FAILED
        assert journal.calls("stop_services") == []
        assert len(journal.calls("read_state")) == 2
        assert result.new_value is True
        assert WorkflowState.MUTATION_FAILED in result.trail

    def test_stop_failure_still_starts_and_verifies(
        self, journal, connections, services, approval, diagnostics, named_target
    ):
        services.stop_error = CascadeError("Service did not stop in time")
        gateway = FakeGateway(journal, hadr_states(True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(named_target, HadrRequest(force=True), HadrTogglePolicy())

        assert len(journal.calls("start_services")) == 1
        assert result.applied is True
        assert result.cascade_applied is False
        assert result.has_error(ErrorCategory.CASCADE)
        assert result.new_value is False
        assert WorkflowState.CASCADE_FAILED in result.trail
        assert WorkflowState.VERIFIED in result.trail

    def test_start_failure_reported(
        self, journal, connections, services, approval, diagnostics, named_target
    ):
        services.start_error = CascadeError("Service failed to start")
        gateway = FakeGateway(journal, hadr_states(True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(named_target, HadrRequest(force=True), HadrTogglePolicy())

        assert result.cascade_applied is False
        assert result.status == ResultStatus.FAILED
        assert len(journal.calls("read_state")) == 2

    def test_verify_failure_leaves_new_value_unknown(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        gateway = FakeGateway(journal, [*hadr_states(True), StateReadError("lost WMI")])
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy())

        assert result.applied is True
        assert result.new_value is None
        assert result.has_error(ErrorCategory.READ)
        assert result.errors[0].step == WorkflowState.VERIFY_FAILED
        assert WorkflowState.VERIFIED not in result.trail


class TestJobRemoval:
    """Agent job removal through the same workflow."""

    def test_history_purged_before_delete(
        self, journal, connections, services, approval, diagnostics, default_target, nightly_job
    ):
        gateway = FakeGateway(journal, job_states(nightly_job, True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(
            default_target, JobRemovalRequest(job_name="NightlyETL"), AgentJobRemovalPolicy()
        )

        changes = [c[1] for c in journal.calls("apply_change")]
        assert changes == [
            PurgeJobHistory(handle=nightly_job),
            DropJob(handle=nightly_job, keep_unused_schedule=False),
        ]
        assert result.applied is True
        assert result.prior_value == "NightlyETL"
        assert result.new_value is None

    def test_keep_history_skips_purge(
        self, journal, connections, services, approval, diagnostics, default_target, nightly_job
    ):
        gateway = FakeGateway(journal, job_states(nightly_job, True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        mutator.run(
            default_target,
            JobRemovalRequest(job_name="NightlyETL", keep_history=True),
            AgentJobRemovalPolicy(),
        )

        changes = [c[1] for c in journal.calls("apply_change")]
        assert changes == [DropJob(handle=nightly_job, keep_unused_schedule=False)]

    @pytest.mark.parametrize("keep", [True, False])
    def test_keep_unused_schedule_flag_passed_through(
        self, keep, journal, connections, services, approval, diagnostics, default_target, nightly_job
    ):
        gateway = FakeGateway(journal, job_states(nightly_job, True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        mutator.run(
            default_target,
            JobRemovalRequest(job_name="NightlyETL", keep_unused_schedule=keep),
            AgentJobRemovalPolicy(),
        )

        drop = journal.calls("apply_change")[-1][1]
        assert drop.keep_unused_schedule is keep

    def test_scenario_job_not_found(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        """Removing a job the server does not have is reported, not raised."""
        gateway = FakeGateway(journal, job_states(None, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(
            default_target, JobRemovalRequest(job_name="NoSuchJob"), AgentJobRemovalPolicy()
        )

        assert journal.calls("apply_change") == []
        assert journal.calls("confirm") == []
        assert result.status == ResultStatus.NOT_FOUND
        assert result.errors == []
        assert result.applied is False

    def test_force_never_restarts_for_jobs(
        self, journal, connections, services, approval, diagnostics, default_target, nightly_job
    ):
        gateway = FakeGateway(journal, job_states(nightly_job, True, False))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(
            default_target,
            JobRemovalRequest(job_name="NightlyETL", force=True),
            AgentJobRemovalPolicy(),
        )

        assert journal.calls("stop_services") == []
        assert result.cascade_applied is False
        assert diagnostics.warnings() == []

    def test_request_without_name_or_id_fails_before_connect(
        self, journal, connections, services, approval, diagnostics, default_target
    ):
        mutator = make_mutator(
            connections, FakeGateway(journal, job_states(None, False)), services, approval, diagnostics
        )

        with pytest.raises(RequestValidationError):
            mutator.run(default_target, JobRemovalRequest(), AgentJobRemovalPolicy())

        assert journal == []


class CancellingApproval:
    """Approves, but the operator hits Ctrl+C while the prompt is open."""

    def __init__(self, token):
        self.token = token

    def confirm(self, description):
        self.token.cancel()
        return True


class TestCancellation:
    """Cooperative cancellation between workflow steps."""

    def test_cancel_before_approval(
        self, journal, connections, services, approval, diagnostics, default_target, cancel
    ):
        cancel.cancel()
        gateway = FakeGateway(journal, hadr_states(True))
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy(), cancel)

        assert result.status == ResultStatus.CANCELLED
        assert result.new_value == result.prior_value
        assert journal.calls("confirm") == []
        assert journal.calls("apply_change") == []

    def test_cancel_during_approval_prevents_mutation(
        self, journal, connections, services, diagnostics, default_target, cancel
    ):
        gateway = FakeGateway(journal, hadr_states(True))
        mutator = make_mutator(connections, gateway, services, CancellingApproval(cancel), diagnostics)

        result = mutator.run(default_target, HadrRequest(), HadrTogglePolicy(), cancel)

        assert result.status == ResultStatus.CANCELLED
        assert journal.calls("apply_change") == []

    def test_cancel_after_mutation_skips_cascade_but_verifies(
        self, journal, connections, services, approval, diagnostics, named_target, cancel
    ):
        gateway = FakeGateway(journal, hadr_states(True, False))
        gateway.on_apply = lambda change: cancel.cancel()
        mutator = make_mutator(connections, gateway, services, approval, diagnostics)

        result = mutator.run(named_target, HadrRequest(force=True), HadrTogglePolicy(), cancel)

        assert journal.calls("stop_services") == []
        assert len(journal.calls("read_state")) == 2
        assert result.applied is True
        assert result.status == ResultStatus.APPLIED
        assert result.new_value is False
        assert WorkflowState.CASCADE_SKIPPED in result.trail
        assert any(w.event == "cancelled" for w in diagnostics.warnings())
