"""
Change request model for MetaGov.

A ChangeRequest is the unit of governance evaluation. It carries a free
text description that the engine never interprets, and a set of
caller-supplied context tags that drive policy selection and evaluation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from metagov.exceptions import ValidationError
from metagov.models.base import (
    generate_uuid,
    model_to_dict,
    model_to_json,
    parse_datetime,
    utc_now,
)


def normalize_tags(tags: Iterable[str]) -> frozenset[str]:
    """
    Normalize a collection of context tags.

    Tags are stripped, lower-cased and de-duplicated; empty tags are
    dropped.

    Args:
        tags: Raw tag values.

    Returns:
        Frozen set of normalized tags.
    """
    if isinstance(tags, str):
        tags = [tags]
    return frozenset(t.strip().lower() for t in tags if t and t.strip())


@dataclass(frozen=True)
class ChangeRequest:
    """
    A proposed change submitted for a governance decision.

    This class is immutable (frozen) so that policies evaluating the
    same request concurrently all see identical input.

    Attributes:
        id: Opaque identifier, caller-supplied or generated.
        description: Free text describing the change. Never parsed
            semantically by the engine; kept for the audit trail.
        tags: Context signals such as "database-change",
            "security-change" or "production-deploy". Supplied by the
            caller, never inferred from the description.
        timestamp: When the change was submitted (UTC).
        metadata: Additional caller data carried into the audit log.
    """

    id: str = field(default_factory=generate_uuid)
    description: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)
    timestamp: datetime = field(default_factory=utc_now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize tags and fill in a missing id."""
        # Use object.__setattr__ because the dataclass is frozen
        if not self.id:
            object.__setattr__(self, "id", generate_uuid())
        object.__setattr__(self, "tags", normalize_tags(self.tags))

    def has_tag(self, tag: str) -> bool:
        """Check whether the request carries the given tag."""
        return tag.strip().lower() in self.tags

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the request to a dictionary."""
        return model_to_dict(self, exclude_none)

    def to_json(self, indent: int | None = None, exclude_none: bool = False) -> str:
        """Convert the request to a JSON string."""
        return model_to_json(self, indent, exclude_none)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeRequest":
        """
        Build a ChangeRequest from its JSON shape.

        Args:
            data: Dictionary with "id", "description", "tags" and
                "timestamp" keys. Only "tags" or "description" is
                required to be meaningful; everything else is optional.

        Returns:
            A new ChangeRequest.

        Raises:
            ValidationError: If a field has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValidationError("Change request must be a JSON object")

        tags = data.get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError(
                "Field 'tags' must be a list of strings",
                details={"tags": tags},
            )

        description = data.get("description", "")
        if not isinstance(description, str):
            raise ValidationError("Field 'description' must be a string")

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValidationError("Field 'metadata' must be an object")

        kwargs: dict[str, Any] = {
            "id": str(data.get("id") or ""),
            "description": description,
            "tags": frozenset(tags),
            "metadata": metadata,
        }

        if data.get("timestamp"):
            try:
                kwargs["timestamp"] = parse_datetime(data["timestamp"])
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Field 'timestamp' is not an RFC 3339 timestamp: {e}",
                    details={"timestamp": data["timestamp"]},
                ) from e

        return cls(**kwargs)

    def __hash__(self) -> int:
        """Return hash based on the request's id."""
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        """Check equality based on request id."""
        if not isinstance(other, ChangeRequest):
            return NotImplemented
        return self.id == other.id

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"ChangeRequest(id={self.id!r}, tags={sorted(self.tags)!r})"
