"""
Audit models for MetaGov.

An AuditEntry records one decision together with the request it
resolved and the policies that were skipped as not applicable.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from metagov.models.base import model_to_dict, parse_datetime, utc_now
from metagov.models.decision import Decision
from metagov.models.request import ChangeRequest


@dataclass(frozen=True)
class SkippedPolicy:
    """
    A registered policy that did not run for a request.

    Attributes:
        policy_name: Name of the skipped policy.
        priority: Its registered priority.
        reason: Why it was skipped.
    """

    policy_name: str
    priority: int
    reason: str = ""

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert to a dictionary."""
        return model_to_dict(self, exclude_none)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SkippedPolicy":
        """Rebuild from a dictionary."""
        return cls(
            policy_name=data["policy_name"],
            priority=int(data["priority"]),
            reason=data.get("reason", ""),
        )


@dataclass(frozen=True)
class AuditEntry:
    """
    One immutable record in the audit log.

    Attributes:
        sequence: 1-based position in the log, assigned on append.
        request: The change request that was decided.
        decision: The decision that was returned for it.
        skipped: Policies that were not applicable, with reasons.
        recorded_at: When the entry was appended (UTC).
    """

    sequence: int
    request: ChangeRequest
    decision: Decision
    skipped: tuple[SkippedPolicy, ...] = field(default_factory=tuple)
    recorded_at: datetime = field(default_factory=utc_now)

    @property
    def request_id(self) -> str:
        """The id of the decided request."""
        return self.request.id

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the entry to a dictionary."""
        return {
            "sequence": self.sequence,
            "request": self.request.to_dict(exclude_none),
            "decision": self.decision.to_dict(exclude_none),
            "skipped": [s.to_dict(exclude_none) for s in self.skipped],
            "recorded_at": self.recorded_at.isoformat(),
        }

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the entry to a JSON string."""
        return json.dumps(self.to_dict(exclude_none), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEntry":
        """Rebuild an entry from its dictionary form."""
        return cls(
            sequence=int(data["sequence"]),
            request=ChangeRequest.from_dict(data["request"]),
            decision=Decision.from_dict(data["decision"]),
            skipped=tuple(SkippedPolicy.from_dict(s) for s in data.get("skipped") or ()),
            recorded_at=parse_datetime(data["recorded_at"]),
        )
