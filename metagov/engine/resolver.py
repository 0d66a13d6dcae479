"""
Conflict resolver for MetaGov.

Reduces the verdicts of all consulted policies to one Decision using
priority-ordered rules:

1. The highest-precedence BLOCK or UNKNOWN verdict dominates and the
   decision is BLOCKED. UNKNOWN never counts as approval.
2. Otherwise, any CONDITIONAL verdict makes the decision CONDITIONAL,
   with the conditions of every CONDITIONAL verdict concatenated in
   priority order.
3. Otherwise the change is APPROVED.
"""

import logging
from datetime import datetime
from typing import Sequence

from metagov.models.decision import Decision, DecisionStatus
from metagov.models.verdict import Verdict, VerdictStatus

logger = logging.getLogger("metagov.engine.resolver")


class ConflictResolver:
    """
    Deterministic reduction of verdicts to a decision.

    The resolver holds no state, so a single instance can be shared
    between threads. Resolving the same verdicts twice yields equal
    decisions.

    Example:
        Resolving verdicts::

            resolver = ConflictResolver()
            decision = resolver.resolve(verdicts, request_id=request.id)
            if decision.is_blocked():
                print(f"Blocked by {decision.dominant_policy}: {decision.reason}")
    """

    def resolve(
        self,
        verdicts: Sequence[Verdict],
        request_id: str = "",
        decided_at: datetime | None = None,
    ) -> Decision:
        """
        Combine verdicts into one decision.

        Args:
            verdicts: One verdict per consulted policy.
            request_id: ID of the request being decided.
            decided_at: Decision timestamp. Defaults to the latest
                evaluation time among the verdicts.

        Returns:
            The combined Decision.

        Raises:
            ValueError: If no verdicts are given.
        """
        if not verdicts:
            raise ValueError("cannot resolve an empty set of verdicts")

        ordered = self.order(verdicts)
        if decided_at is None:
            decided_at = max(v.evaluated_at for v in ordered)

        for verdict in ordered:
            if verdict.is_blocking:
                reason = verdict.rationale
                if verdict.status == VerdictStatus.UNKNOWN:
                    reason = f"{verdict.policy_name} could not complete: {verdict.rationale}"
                logger.debug(
                    f"Request {request_id} blocked by {verdict.policy_name} "
                    f"({verdict.status.value})"
                )
                return Decision(
                    request_id=request_id,
                    final_status=DecisionStatus.BLOCKED,
                    dominant_policy=verdict.policy_name,
                    verdicts=ordered,
                    decided_at=decided_at,
                    reason=reason,
                )

        conditional = [v for v in ordered if v.status == VerdictStatus.CONDITIONAL]
        if conditional:
            conditions: list[str] = []
            for verdict in conditional:
                conditions.extend(verdict.conditions)
            return Decision(
                request_id=request_id,
                final_status=DecisionStatus.CONDITIONAL,
                dominant_policy=conditional[0].policy_name,
                verdicts=ordered,
                conditions=tuple(conditions),
                decided_at=decided_at,
                reason=conditional[0].rationale,
            )

        return Decision(
            request_id=request_id,
            final_status=DecisionStatus.APPROVED,
            dominant_policy=ordered[0].policy_name,
            verdicts=ordered,
            decided_at=decided_at,
            reason=f"Approved by {len(ordered)} policies",
        )

    @staticmethod
    def order(verdicts: Sequence[Verdict]) -> tuple[Verdict, ...]:
        """
        Put verdicts in precedence order.

        Sorted by priority when every verdict carries one; otherwise
        the input order is taken as the precedence order.
        """
        unranked = [v.policy_name for v in verdicts if v.priority is None]
        if not unranked:
            return tuple(sorted(verdicts, key=lambda v: v.priority))  # type: ignore[arg-type, return-value]
        logger.debug(f"Verdicts without priority ({', '.join(unranked)}); keeping input order")
        return tuple(verdicts)
