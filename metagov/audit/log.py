"""
Audit log for MetaGov.

The AuditLog is the append-only history of governance decisions. Writes
are serialized by a single lock that also assigns sequence numbers, so
entries are totally ordered by append time. Reads take a snapshot bound
at call time and page through the sink lazily.
"""

import logging
import threading
from typing import Any, Iterable, Iterator

from metagov.audit.sinks import AuditSink
from metagov.exceptions import StorageError
from metagov.models.audit import AuditEntry, SkippedPolicy
from metagov.models.base import utc_now
from metagov.models.decision import Decision
from metagov.models.request import ChangeRequest

logger = logging.getLogger("metagov.audit.log")


class AuditEntries:
    """
    A restartable, lazily paged view of the audit log.

    The view is bounded by the last sequence at the time it was taken.
    Entries appended afterwards are not visible, and iterating twice
    yields the same entries.
    """

    def __init__(self, sink: AuditSink, upper: int, page_size: int = 100) -> None:
        self._sink = sink
        self._upper = upper
        self._page_size = page_size

    @property
    def upper(self) -> int:
        """Highest sequence included in this view."""
        return self._upper

    def __iter__(self) -> Iterator[AuditEntry]:
        if self._upper <= 0:
            return iter(())
        return self._sink.scan(upper=self._upper, page_size=self._page_size)

    def __len__(self) -> int:
        return self._upper

    def __repr__(self) -> str:
        return f"AuditEntries(upper={self._upper})"


class AuditLog:
    """
    Serialized append-only decision history.

    Example:
        Recording and reading decisions::

            with AuditLog(SQLiteSink(Database("metagov_audit.db"))) as log:
                log.append(request, decision)
                for entry in log.entries():
                    print(entry.sequence, entry.decision.final_status.value)
    """

    def __init__(self, sink: AuditSink, page_size: int = 100) -> None:
        """
        Initialize the audit log.

        Args:
            sink: The store entries are persisted to.
            page_size: Number of entries fetched per read.
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._sink = sink
        self._page_size = page_size
        self._lock = threading.Lock()
        self._last = 0
        self._opened = False

    @property
    def sink(self) -> AuditSink:
        """The underlying store."""
        return self._sink

    @property
    def is_open(self) -> bool:
        """Whether the log accepts appends."""
        return self._opened

    @property
    def last_sequence(self) -> int:
        """Sequence of the most recent entry, 0 if the log is empty."""
        return self._last

    def open(self) -> None:
        """
        Open the sink and resume numbering after its last entry.

        Raises:
            StorageError: If the sink cannot be opened.
        """
        with self._lock:
            if self._opened:
                return
            try:
                self._sink.open()
                self._last = self._sink.last_sequence()
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to open audit {self._sink.name} sink: {e}") from e
            self._opened = True

        logger.info(f"Audit log opened ({self._sink.name}, {self._last} existing entries)")

    def append(
        self,
        request: ChangeRequest,
        decision: Decision,
        skipped: Iterable[SkippedPolicy] = (),
    ) -> AuditEntry:
        """
        Append a decision to the log.

        Args:
            request: The decided change request.
            decision: The decision returned for it.
            skipped: Policies that were not applicable.

        Returns:
            The stored entry.

        Raises:
            StorageError: If the log is not open or the sink write fails.
                Failed writes are not retried.
        """
        with self._lock:
            if not self._opened:
                raise StorageError("Audit log is not open")

            entry = AuditEntry(
                sequence=self._last + 1,
                request=request,
                decision=decision,
                skipped=tuple(skipped),
                recorded_at=utc_now(),
            )
            try:
                self._sink.write(entry)
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(
                    f"Failed to write audit entry: {e}",
                    details={"request_id": request.id, "sequence": entry.sequence},
                ) from e
            self._last = entry.sequence

        logger.debug(f"Audit entry {entry.sequence} recorded for request {request.id}")
        return entry

    def entries(self) -> AuditEntries:
        """Return a snapshot view of every entry appended so far."""
        with self._lock:
            upper = self._last
        return AuditEntries(self._sink, upper, self._page_size)

    def find(self, request_id: str) -> list[AuditEntry]:
        """Return the entries recorded for a request ID, oldest first."""
        return self._sink.find(request_id)

    def stats(self) -> dict[str, Any]:
        """
        Summarize the log.

        Returns:
            Dictionary with the total entry count and counts per final
            status.
        """
        by_status = self._sink.count_by_status()
        return {
            "total": sum(by_status.values()),
            "last_sequence": self._last,
            "by_status": by_status,
            **self._sink.describe(),
        }

    def close(self) -> None:
        """Close the sink. Further appends raise StorageError."""
        with self._lock:
            if not self._opened:
                return
            self._opened = False
            self._sink.close()

    def __len__(self) -> int:
        return self._last

    def __enter__(self) -> "AuditLog":
        """Context manager entry - open the log."""
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close the log."""
        self.close()
