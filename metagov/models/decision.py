"""
Decision model for MetaGov.

A Decision is the single combined governance outcome for a change
request, built by the conflict resolver from every verdict consulted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from metagov.models.base import model_to_dict, model_to_json, parse_datetime, utc_now
from metagov.models.verdict import Verdict


class DecisionStatus(Enum):
    """Final governance outcomes."""

    APPROVED = "APPROVED"
    """Every consulted policy approved the change."""

    BLOCKED = "BLOCKED"
    """A BLOCK or UNKNOWN verdict dominated, or the engine failed closed."""

    CONDITIONAL = "CONDITIONAL"
    """The change may proceed once all collected conditions are met."""


@dataclass(frozen=True)
class Decision:
    """
    The governance output for one change request.

    Decisions are created once per request and never mutated.

    Attributes:
        request_id: The ChangeRequest this decision resolves.
        final_status: The combined outcome.
        dominant_policy: Name of the policy whose verdict determined
            final_status, or an engine component name when the engine
            failed closed.
        verdicts: Every verdict consulted, in priority order.
        conditions: Conditions collected from CONDITIONAL verdicts, in
            priority order. Empty unless final_status is CONDITIONAL.
        decided_at: When the decision was made (UTC).
        reason: Human-readable explanation of the outcome.
    """

    request_id: str
    final_status: DecisionStatus
    dominant_policy: str
    verdicts: tuple[Verdict, ...] = field(default_factory=tuple)
    conditions: tuple[str, ...] = field(default_factory=tuple)
    decided_at: datetime = field(default_factory=utc_now)
    reason: str = ""

    def __post_init__(self) -> None:
        """Freeze sequences and check the conditions invariant."""
        object.__setattr__(self, "verdicts", tuple(self.verdicts))
        object.__setattr__(self, "conditions", tuple(self.conditions))
        if self.conditions and self.final_status != DecisionStatus.CONDITIONAL:
            raise ValueError("conditions are only allowed on CONDITIONAL decisions")

    def is_approved(self) -> bool:
        """Check if the change is approved outright."""
        return self.final_status == DecisionStatus.APPROVED

    def is_blocked(self) -> bool:
        """Check if the change is blocked."""
        return self.final_status == DecisionStatus.BLOCKED

    def is_conditional(self) -> bool:
        """Check if the change is approved subject to conditions."""
        return self.final_status == DecisionStatus.CONDITIONAL

    def get_verdict(self, policy_name: str) -> Verdict | None:
        """Return the verdict produced by the named policy, if any."""
        for verdict in self.verdicts:
            if verdict.policy_name == policy_name:
                return verdict
        return None

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the decision to a dictionary."""
        return model_to_dict(self, exclude_none)

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the decision to a JSON string."""
        return model_to_json(self, indent, exclude_none)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Decision":
        """Rebuild a decision from its dictionary form."""
        return cls(
            request_id=data["request_id"],
            final_status=DecisionStatus(data["final_status"]),
            dominant_policy=data["dominant_policy"],
            verdicts=tuple(Verdict.from_dict(v) for v in data.get("verdicts") or ()),
            conditions=tuple(data.get("conditions") or ()),
            decided_at=parse_datetime(data["decided_at"]),
            reason=data.get("reason", ""),
        )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (
            f"Decision(request_id={self.request_id!r}, "
            f"final_status={self.final_status.value}, "
            f"dominant_policy={self.dominant_policy!r})"
        )
