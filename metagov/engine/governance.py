"""
Governance facade for MetaGov.

This module provides the GovernanceFacade class, the single entry point
for governance decisions. It orchestrates the request lifecycle through
classification, concurrent evaluation, conflict resolution and audit
logging, and fails closed: any internal fault yields a BLOCKED decision.
"""

import logging
from typing import Any, Sequence

from metagov.audit.log import AuditLog
from metagov.engine.classifier import ContextClassifier
from metagov.engine.coordinator import EvaluationCoordinator
from metagov.engine.registry import PolicyRegistry
from metagov.engine.resolver import ConflictResolver
from metagov.exceptions import AuditFailureError, UnclassifiableContextError
from metagov.models.audit import SkippedPolicy
from metagov.models.decision import Decision, DecisionStatus
from metagov.models.request import ChangeRequest
from metagov.models.verdict import Verdict

logger = logging.getLogger("metagov.engine.governance")

FACADE_COMPONENT = "governance-facade"
"""Dominant policy reported when the engine itself fails."""

CLASSIFIER_COMPONENT = "context-classifier"
"""Dominant policy reported when no policy applies to a request."""

UNCLASSIFIABLE_REASON = "context could not be classified"


class GovernanceFacade:
    """
    Decides change requests and records every decision.

    The facade seals the registry it is given; no policy can be added
    once decisions are being made. ``decide`` is safe to call from many
    threads at once.

    Example:
        Deciding a change::

            facade = GovernanceFacade(
                registry=PolicyRegistry.with_defaults(),
                coordinator=EvaluationCoordinator(policy_timeout_ms=2000),
                audit_log=AuditLog(MemorySink()),
            )
            decision = facade.decide(
                ChangeRequest(description="Add index", tags={"database-change"})
            )
            print(decision.final_status.value, decision.dominant_policy)
    """

    def __init__(
        self,
        registry: PolicyRegistry,
        coordinator: EvaluationCoordinator,
        audit_log: AuditLog,
        classifier: ContextClassifier | None = None,
        resolver: ConflictResolver | None = None,
    ) -> None:
        """
        Initialize the facade.

        Args:
            registry: Policies to consult. Sealed by this call.
            coordinator: Runs the applicable policies.
            audit_log: Receives one entry per decision. Opened if needed.
            classifier: Selects applicable policies.
            resolver: Combines verdicts into a decision.
        """
        self._registry = registry
        self._coordinator = coordinator
        self._audit_log = audit_log
        self._classifier = classifier or ContextClassifier()
        self._resolver = resolver or ConflictResolver()

        self._registry.seal()
        self._audit_log.open()

    @classmethod
    def from_config(cls, config: Any) -> "GovernanceFacade":
        """
        Build the full engine from configuration.

        Policies come from ``config.policies_path`` when set, otherwise
        the eight built-in meta-skills are used.

        Args:
            config: A MetaGovConfig.

        Returns:
            A ready GovernanceFacade.

        Raises:
            PolicyError: If the policy pack is invalid.
            RegistryError: If the policies cannot be registered.
            StorageError: If the audit store cannot be opened.
        """
        from metagov.audit import create_audit_log
        from metagov.policies.builtin import default_policies
        from metagov.policies.loader import PolicyPackLoader

        if config.policies_path:
            result = PolicyPackLoader().load_file(config.policies_path, strict=True)
            policies = result.policies
            logger.info(
                f"Loaded {len(policies)} policies from pack {result.name or config.policies_path}"
            )
        else:
            policies = default_policies()

        registry = PolicyRegistry(policies)
        coordinator = EvaluationCoordinator.from_config(config.governance)
        audit_log = create_audit_log(config.audit)

        try:
            return cls(registry, coordinator, audit_log)
        except Exception:
            coordinator.close()
            raise

    @property
    def registry(self) -> PolicyRegistry:
        """The sealed policy registry."""
        return self._registry

    @property
    def audit_log(self) -> AuditLog:
        """The audit log decisions are recorded in."""
        return self._audit_log

    def decide(self, request: ChangeRequest) -> Decision:
        """
        Decide a change request.

        Classifies the request, evaluates the applicable policies,
        resolves their verdicts and appends the outcome to the audit log.

        Args:
            request: The change request.

        Returns:
            The recorded Decision.

        Raises:
            AuditFailureError: If the decision could not be recorded.
        """
        skipped: tuple[SkippedPolicy, ...] = ()
        verdicts: list[Verdict] = []

        try:
            classification = self._classifier.classify(request, self._registry)
            skipped = tuple(classification.skipped)
            verdicts = self._coordinator.evaluate(request, classification.applicable)
            decision = self._resolver.resolve(verdicts, request_id=request.id)

        except UnclassifiableContextError as e:
            logger.warning(f"Request {request.id} blocked: {e.message}")
            skipped = tuple(
                SkippedPolicy(p.name, p.priority, f"not applicable to tags {sorted(request.tags)}")
                for p in self._registry.all()
            )
            decision = self._fail_closed(request, CLASSIFIER_COMPONENT, UNCLASSIFIABLE_REASON)

        except Exception as e:
            logger.exception(f"Decision for request {request.id} failed, blocking")
            decision = self._fail_closed(
                request,
                FACADE_COMPONENT,
                f"internal error: {type(e).__name__}: {e}",
                verdicts=verdicts,
            )

        self._record(request, decision, skipped)

        logger.info(
            f"Request {request.id}: {decision.final_status.value} "
            f"(dominant: {decision.dominant_policy})"
        )
        return decision

    def _fail_closed(
        self,
        request: ChangeRequest,
        component: str,
        reason: str,
        verdicts: Sequence[Verdict] = (),
    ) -> Decision:
        return Decision(
            request_id=request.id,
            final_status=DecisionStatus.BLOCKED,
            dominant_policy=component,
            verdicts=tuple(verdicts),
            reason=reason,
        )

    def _record(
        self,
        request: ChangeRequest,
        decision: Decision,
        skipped: tuple[SkippedPolicy, ...],
    ) -> None:
        """Append the decision to the audit log or raise AuditFailureError."""
        try:
            self._audit_log.append(request, decision, skipped)
        except Exception as e:
            logger.error(f"Failed to record decision for request {request.id}: {e}")
            raise AuditFailureError(
                f"Decision for request {request.id} could not be recorded: {e}",
                details={
                    "request_id": request.id,
                    "final_status": decision.final_status.value,
                },
                decision=decision,
            ) from e

    def close(self) -> None:
        """Shut down the coordinator and close the audit log."""
        self._coordinator.close()
        self._audit_log.close()

    def __enter__(self) -> "GovernanceFacade":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - release resources."""
        self.close()
