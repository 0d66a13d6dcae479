"""
Repository classes for MetaGov data access.

This module provides repository classes following the repository
pattern for persisting MetaGov data models.
"""

import json
from typing import Any

from metagov.models.audit import AuditEntry
from metagov.storage.database import Database


class BaseRepository:
    """
    Base class for all repositories.

    Provides common functionality for database operations.
    """

    def __init__(self, db: Database) -> None:
        """
        Initialize the repository.

        Args:
            db: The Database instance to use for operations.
        """
        self.db = db

    def _serialize_json(self, value: Any) -> str | None:
        """Serialize a value to JSON string."""
        if value is None:
            return None
        return json.dumps(value)

    def _deserialize_json(self, value: str | None) -> Any:
        """Deserialize a JSON string to a Python object."""
        if value is None:
            return None
        return json.loads(value)


class AuditRepository(BaseRepository):
    """
    Repository for the decision audit log.

    Insert-only: entries are never updated or deleted.
    """

    def insert(self, entry: AuditEntry) -> None:
        """
        Store one audit entry under its sequence number.

        Raises:
            StorageError: If the insert fails, including a reused sequence.
        """
        decision = entry.decision
        self.db.execute_write(
            """
            INSERT INTO audit_log
                (sequence, request_id, final_status, dominant_policy,
                 recorded_at, request, decision, skipped)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.sequence,
                entry.request_id,
                decision.final_status.value,
                decision.dominant_policy,
                entry.recorded_at.isoformat(),
                self._serialize_json(entry.request.to_dict()),
                self._serialize_json(decision.to_dict()),
                self._serialize_json([s.to_dict() for s in entry.skipped]),
            ),
        )

    def list_range(
        self,
        after: int = 0,
        limit: int = 100,
        upper: int | None = None,
    ) -> list[AuditEntry]:
        """
        List entries in sequence order.

        Args:
            after: Return entries with a sequence greater than this.
            limit: Maximum number of entries.
            upper: Return no entry with a sequence greater than this.
        """
        params: list[Any] = [after]
        bound = ""
        if upper is not None:
            bound = "AND sequence <= ?"
            params.append(upper)
        params.append(limit)

        rows = self.db.execute(
            f"""
            SELECT * FROM audit_log
            WHERE sequence > ? {bound}
            ORDER BY sequence ASC
            LIMIT ?
            """,
            tuple(params),
        )
        return [self._row_to_entry(row) for row in rows]

    def last_sequence(self) -> int:
        """Return the highest stored sequence, or 0 for an empty log."""
        row = self.db.execute_one("SELECT MAX(sequence) AS last FROM audit_log")
        return (row["last"] or 0) if row else 0

    def find_by_request(self, request_id: str) -> list[AuditEntry]:
        """Return every entry recorded for a request ID, oldest first."""
        rows = self.db.execute(
            "SELECT * FROM audit_log WHERE request_id = ? ORDER BY sequence ASC",
            (request_id,),
        )
        return [self._row_to_entry(row) for row in rows]

    def count_by_status(self) -> dict[str, int]:
        """Count entries per final status."""
        rows = self.db.execute(
            "SELECT final_status, COUNT(*) AS count FROM audit_log GROUP BY final_status"
        )
        return {row["final_status"]: row["count"] for row in rows}

    def _row_to_entry(self, row: dict[str, Any]) -> AuditEntry:
        return AuditEntry.from_dict(
            {
                "sequence": row["sequence"],
                "recorded_at": row["recorded_at"],
                "request": self._deserialize_json(row["request"]),
                "decision": self._deserialize_json(row["decision"]),
                "skipped": self._deserialize_json(row["skipped"]) or [],
            }
        )
