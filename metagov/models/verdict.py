"""
Verdict model for MetaGov.

A Verdict is one policy's judgement on one change request.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from metagov.models.base import model_to_dict, model_to_json, parse_datetime, utc_now


class VerdictStatus(Enum):
    """Possible outcomes of a single policy evaluation."""

    APPROVE = "APPROVE"
    """The policy has no objection to the change."""

    BLOCK = "BLOCK"
    """The policy rejects the change."""

    CONDITIONAL = "CONDITIONAL"
    """The change may proceed once the listed conditions are met."""

    UNKNOWN = "UNKNOWN"
    """The policy could not complete. Treated as BLOCK during resolution."""


@dataclass(frozen=True)
class Verdict:
    """
    Result of one policy's evaluation of a change request.

    Attributes:
        policy_name: Name of the policy that produced the verdict.
        status: The policy's judgement.
        rationale: Human-readable explanation.
        conditions: Ordered conditions the change must satisfy. Only
            allowed when status is CONDITIONAL.
        evaluated_at: When the evaluation finished (UTC).
        priority: Priority of the producing policy. Stamped by the
            evaluation coordinator; None for verdicts built outside it.
        duration_ms: Time the evaluation took, in milliseconds.
    """

    policy_name: str
    status: VerdictStatus
    rationale: str = ""
    conditions: tuple[str, ...] = field(default_factory=tuple)
    evaluated_at: datetime = field(default_factory=utc_now)
    priority: int | None = None
    duration_ms: float = 0.0

    def __post_init__(self) -> None:
        """Validate the verdict invariants."""
        if not self.policy_name:
            raise ValueError("policy_name is required")
        if not isinstance(self.status, VerdictStatus):
            raise ValueError(f"status must be a VerdictStatus, got {self.status!r}")
        object.__setattr__(self, "conditions", tuple(self.conditions))
        if self.conditions and self.status != VerdictStatus.CONDITIONAL:
            raise ValueError(
                f"conditions are only allowed on CONDITIONAL verdicts, "
                f"got {self.status.value}"
            )

    @classmethod
    def unknown(
        cls,
        policy_name: str,
        cause: str,
        priority: int | None = None,
        duration_ms: float = 0.0,
    ) -> "Verdict":
        """
        Build the UNKNOWN verdict recorded when a policy cannot complete.

        Args:
            policy_name: Name of the policy that failed.
            cause: Why the evaluation did not complete.
            priority: Priority of the failed policy.
            duration_ms: How long the coordinator waited.

        Returns:
            An UNKNOWN verdict carrying the cause as its rationale.
        """
        return cls(
            policy_name=policy_name,
            status=VerdictStatus.UNKNOWN,
            rationale=cause,
            priority=priority,
            duration_ms=duration_ms,
        )

    @property
    def is_blocking(self) -> bool:
        """True for BLOCK and UNKNOWN verdicts."""
        return self.status in (VerdictStatus.BLOCK, VerdictStatus.UNKNOWN)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the verdict to a dictionary."""
        return model_to_dict(self, exclude_none)

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the verdict to a JSON string."""
        return model_to_json(self, indent, exclude_none)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Verdict":
        """Rebuild a verdict from its dictionary form."""
        return cls(
            policy_name=data["policy_name"],
            status=VerdictStatus(data["status"]),
            rationale=data.get("rationale", ""),
            conditions=tuple(data.get("conditions") or ()),
            evaluated_at=parse_datetime(data["evaluated_at"]),
            priority=data.get("priority"),
            duration_ms=float(data.get("duration_ms") or 0.0),
        )
