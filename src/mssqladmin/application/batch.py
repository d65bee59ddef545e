"""
Batch runner.
Feeds targets to the guarded state mutator one at a time, sequentially or
on a thread pool, isolating failures per target.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from mssqladmin.application.mutator import GuardedStateMutator
from mssqladmin.application.policies.base import MutationPolicy
from mssqladmin.application.ports import CancellationToken
from mssqladmin.domain.enums import ErrorCategory, WorkflowState
from mssqladmin.domain.models import MutationRequest, MutationResult, Target

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Runs one mutation across many targets.

    Results come back in input order. A connection failure, or any
    unexpected exception, on one target never stops the others.
    """

    def __init__(
        self,
        mutator: GuardedStateMutator,
        max_workers: int = 1,
        credential_resolver: Callable[[str | None], Any] | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.mutator = mutator
        self.max_workers = max_workers
        self.credential_resolver = credential_resolver

    def run(
        self,
        targets: list[Target],
        request: MutationRequest,
        policy: MutationPolicy,
        cancel: CancellationToken | None = None,
    ) -> list[MutationResult]:
        """
        Run the request against every target.

        Raises:
            RequestValidationError: request is insufficient (before any target)
        """
        policy.validate(request)
        cancel = cancel or CancellationToken()
        credential = self._resolve_credential(request.credential_ref)

        logger.info(
            "Running %s on %d target(s) (workers=%d)", policy.name, len(targets), self.max_workers
        )

        def run_one(target: Target) -> MutationResult:
            try:
                return self.mutator.run(target, request, policy, cancel, credential)
            except Exception as e:  # pylint: disable=broad-except
                logger.exception("Unexpected failure on %s", target)
                result = MutationResult.for_target(target)
                result.add_error(ErrorCategory.INTERNAL, str(e), WorkflowState.DISCONNECTED)
                result.advance(WorkflowState.REPORTED)
                return result

        if self.max_workers == 1 or len(targets) <= 1:
            return [run_one(t) for t in targets]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(run_one, targets))

    def _resolve_credential(self, credential_ref: str | None) -> Any | None:
        if self.credential_resolver is None:
            return None
        return self.credential_resolver(credential_ref)
