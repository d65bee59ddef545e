"""
Guarded State Mutator.

Applies one confirmable, verifiable administrative change to one target:

1. Resolve & connect
2. Read current state
3. Confirmation gate
4. Apply mutation
5. Optional cascade (dependent service stop/start)
6. Re-verify
7. Emit result

Every target that gets past argument validation produces a MutationResult.
Errors are attached to the result and emitted through the diagnostics sink;
the mutator never decides to retry, roll back or abort sibling targets.
"""

from __future__ import annotations

import logging
from typing import Any

from mssqladmin.application.policies.base import MutationPolicy
from mssqladmin.application.ports import (
    ApprovalGate,
    CancellationToken,
    ChangeApplier,
    ConnectionProvider,
    DiagnosticsSink,
    ServiceController,
    Session,
    StateReader,
)
from mssqladmin.domain.enums import (
    ErrorCategory,
    IdempotencyPolicy,
    ResultStatus,
    WorkflowState,
)
from mssqladmin.domain.errors import (
    CascadeError,
    MutationError,
    StateReadError,
    TargetConnectionError,
)
from mssqladmin.domain.models import MutationRequest, MutationResult, Target

logger = logging.getLogger(__name__)


class GuardedStateMutator:
    """
    Reusable query -> decide -> confirm -> apply -> cascade -> verify workflow.

    Usage:
        mutator = GuardedStateMutator(connections, gateway, gateway, services,
                                      AutoApproveGate(), diagnostics)
        result = mutator.run(target, HadrRequest(force=True), HadrTogglePolicy())
    """

    def __init__(
        self,
        connections: ConnectionProvider,
        reader: StateReader,
        applier: ChangeApplier,
        services: ServiceController,
        approval: ApprovalGate,
        diagnostics: DiagnosticsSink,
    ) -> None:
        self.connections = connections
        self.reader = reader
        self.applier = applier
        self.services = services
        self.approval = approval
        self.diagnostics = diagnostics

    def run(
        self,
        target: Target,
        request: MutationRequest,
        policy: MutationPolicy,
        cancel: CancellationToken | None = None,
        credential: Any | None = None,
    ) -> MutationResult:
        """
        Run the workflow for one target.

        Raises:
            RequestValidationError: request is insufficient (before any network call)
        """
        policy.validate(request)
        cancel = cancel or CancellationToken()
        result = MutationResult.for_target(target)

        try:
            session = self.connections.connect(target, credential)
        except TargetConnectionError as e:
            self._record(result, e, WorkflowState.DISCONNECTED)
            return self._report(result, policy)

        result.advance(WorkflowState.CONNECTED)
        try:
            self._run_connected(session, target, request, policy, cancel, result)
        finally:
            self._close(session, target)
        return self._report(result, policy)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run_connected(
        self,
        session: Session,
        target: Target,
        request: MutationRequest,
        policy: MutationPolicy,
        cancel: CancellationToken,
        result: MutationResult,
    ) -> None:
        key = policy.state_key(target, request)
        try:
            state = self.reader.read_state(session, key)
        except (StateReadError, TargetConnectionError) as e:
            self._record(result, e, WorkflowState.CONNECTED)
            return

        result.advance(WorkflowState.STATE_READ)
        result.prior_value = state.value

        if policy.is_absent(state):
            result.new_value = state.value
            result.status = ResultStatus.NOT_FOUND
            self._emit(logging.INFO, "not_found", target, detail=policy.describe(target, state, request))
            return

        if policy.is_satisfied(state, request):
            if request.idempotency == IdempotencyPolicy.SKIP_IF_SATISFIED:
                result.new_value = state.value
                result.status = ResultStatus.SKIPPED
                self._emit(logging.INFO, "already_satisfied", target, value=state.value)
                return
            logger.debug("%s already at desired state; applying anyway", target)

        if self._cancelled(cancel, result, target, "before approval"):
            return

        description = policy.describe(target, state, request)
        approved = self.approval.confirm(description) if request.confirm else True
        if not approved:
            result.advance(WorkflowState.REJECTED)
            result.new_value = state.value
            result.status = ResultStatus.REJECTED
            self._emit(logging.INFO, "rejected", target, detail=description)
            return
        result.advance(WorkflowState.APPROVED)

        if self._cancelled(cancel, result, target, "before mutation"):
            return

        mutated = self._apply(session, target, state, request, policy, result)
        if mutated:
            self._cascade(target, request, policy, cancel, result)
        else:
            result.advance(WorkflowState.CASCADE_SKIPPED)

        self._verify(session, key, result)

    def _apply(
        self,
        session: Session,
        target: Target,
        state: Any,
        request: MutationRequest,
        policy: MutationPolicy,
        result: MutationResult,
    ) -> bool:
        for change in policy.plan(target, state, request):
            logger.debug("Applying %s on %s", change, target)
            try:
                self.applier.apply_change(session, change)
            except (MutationError, TargetConnectionError) as e:
                result.advance(WorkflowState.MUTATION_FAILED)
                self._record(result, e, WorkflowState.MUTATION_FAILED)
                return False
        result.advance(WorkflowState.MUTATED)
        result.applied = True
        self._emit(logging.INFO, "mutated", target, policy=policy.name)
        return True

    def _cascade(
        self,
        target: Target,
        request: MutationRequest,
        policy: MutationPolicy,
        cancel: CancellationToken,
        result: MutationResult,
    ) -> None:
        if not policy.requires_restart:
            result.advance(WorkflowState.CASCADE_SKIPPED)
            return

        if not request.force:
            result.advance(WorkflowState.CASCADE_SKIPPED)
            self._emit(
                logging.WARNING,
                "restart_required",
                target,
                detail="Change applied but requires a manual restart of the SQL Server service",
            )
            return

        if cancel.cancelled:
            result.advance(WorkflowState.CASCADE_SKIPPED)
            self._emit(
                logging.WARNING,
                "cancelled",
                target,
                detail="Cancelled before service restart; manual restart required",
            )
            return

        names = policy.dependent_services(target)
        failed = False
        try:
            self.services.stop_services(target.host, target.instance_name, names)
        except (CascadeError, TargetConnectionError) as e:
            failed = True
            self._record(result, e, WorkflowState.CASCADE_FAILED)
        # Start even after a failed stop so nothing is left stopped
        try:
            self.services.start_services(target.host, target.instance_name, names)
        except (CascadeError, TargetConnectionError) as e:
            failed = True
            self._record(result, e, WorkflowState.CASCADE_FAILED)

        if failed:
            result.advance(WorkflowState.CASCADE_FAILED)
            return
        result.advance(WorkflowState.CASCADE_APPLIED)
        result.cascade_applied = True
        self._emit(logging.INFO, "services_restarted", target, services=",".join(names))

    def _verify(self, session: Session, key: Any, result: MutationResult) -> None:
        try:
            state = self.reader.read_state(session, key)
        except (StateReadError, TargetConnectionError) as e:
            result.new_value = None
            self._record(result, e, WorkflowState.VERIFY_FAILED)
            result.advance(WorkflowState.VERIFY_FAILED)
            return
        result.new_value = state.value
        result.advance(WorkflowState.VERIFIED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cancelled(
        self, cancel: CancellationToken, result: MutationResult, target: Target, where: str
    ) -> bool:
        if not cancel.cancelled:
            return False
        result.new_value = result.prior_value
        result.status = ResultStatus.CANCELLED
        self._emit(logging.WARNING, "cancelled", target, detail=f"Cancelled {where}")
        return True

    def _record(self, result: MutationResult, error: Exception, step: WorkflowState) -> None:
        category = getattr(error, "category", ErrorCategory.INTERNAL)
        message = getattr(error, "message", None) or str(error)
        result.add_error(category, message, step)
        self._emit(
            logging.ERROR,
            f"{category.value}_error",
            result.full_name,
            step=step.value,
            detail=message,
        )

    def _report(self, result: MutationResult, policy: MutationPolicy) -> MutationResult:
        if result.errors:
            result.status = ResultStatus.FAILED
        elif result.applied:
            result.status = ResultStatus.APPLIED
        result.advance(WorkflowState.REPORTED)
        self._emit(
            logging.INFO,
            "result",
            result.full_name,
            policy=policy.name,
            status=result.status.value,
            prior=result.prior_value,
            new=result.new_value,
            applied=result.applied,
            cascade=result.cascade_applied,
        )
        return result

    def _emit(self, level: int, event: str, target: Any, **fields: Any) -> None:
        self.diagnostics.emit(level, event, str(target), **fields)

    def _close(self, session: Session, target: Target) -> None:
        try:
            session.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Failed to close session to %s: %s", target, e)
