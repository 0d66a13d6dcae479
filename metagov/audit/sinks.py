"""
Audit sinks for MetaGov.

A sink is the durable store behind the AuditLog. The log serializes
writes and assigns sequence numbers; sinks only persist entries and read
them back in sequence order.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator

from metagov.exceptions import StorageError, ValidationError
from metagov.models.audit import AuditEntry
from metagov.storage.database import Database
from metagov.storage.repositories import AuditRepository

logger = logging.getLogger("metagov.audit.sinks")


class AuditSink(ABC):
    """
    Abstract append-only store for audit entries.

    Implementations must return entries from ``read`` in ascending
    sequence order and must never modify or drop a written entry.
    """

    name: str = "sink"

    @abstractmethod
    def open(self) -> None:
        """Prepare the store for reading and writing."""
        ...

    @abstractmethod
    def write(self, entry: AuditEntry) -> None:
        """
        Persist one entry.

        Raises:
            StorageError: If the entry could not be stored.
        """
        ...

    @abstractmethod
    def read(self, after: int = 0, limit: int = 100, upper: int | None = None) -> list[AuditEntry]:
        """
        Read entries with ``after < sequence <= upper``, oldest first.

        Args:
            after: Exclusive lower sequence bound.
            limit: Maximum number of entries to return.
            upper: Inclusive upper sequence bound, or None for no bound.
        """
        ...

    @abstractmethod
    def last_sequence(self) -> int:
        """Return the highest stored sequence, or 0 if empty."""
        ...

    def close(self) -> None:
        """Release the store's resources."""

    def scan(self, upper: int | None = None, page_size: int = 100) -> Iterator[AuditEntry]:
        """Iterate over all entries up to ``upper`` one page at a time."""
        after = 0
        while upper is None or after < upper:
            page = self.read(after, page_size, upper)
            if not page:
                return
            yield from page
            after = page[-1].sequence

    def find(self, request_id: str) -> list[AuditEntry]:
        """Return the entries recorded for a request ID."""
        return [e for e in self.scan() if e.request_id == request_id]

    def count_by_status(self) -> dict[str, int]:
        """Count entries per final decision status."""
        counts: dict[str, int] = {}
        for entry in self.scan():
            status = entry.decision.final_status.value
            counts[status] = counts.get(status, 0) + 1
        return counts

    def describe(self) -> dict[str, Any]:
        """Return a description of the sink for status output."""
        return {"backend": self.name}


class MemorySink(AuditSink):
    """
    In-process audit store.

    Entries are lost when the process exits. Intended for tests and
    embedding.
    """

    name = "memory"

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def open(self) -> None:
        pass

    def write(self, entry: AuditEntry) -> None:
        with self._lock:
            expected = len(self._entries) + 1
            if entry.sequence != expected:
                raise StorageError(
                    f"Out of order audit sequence {entry.sequence}, expected {expected}",
                    details={"sequence": entry.sequence},
                )
            self._entries.append(entry)

    def read(self, after: int = 0, limit: int = 100, upper: int | None = None) -> list[AuditEntry]:
        with self._lock:
            stop = len(self._entries) if upper is None else min(upper, len(self._entries))
            return self._entries[after:stop][:limit]

    def last_sequence(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteSink(AuditSink):
    """
    Audit store backed by the ``audit_log`` SQLite table.

    Example:
        Creating a durable sink::

            sink = SQLiteSink(Database("metagov_audit.db"))
            log = AuditLog(sink)
    """

    name = "sqlite"

    def __init__(self, db: Database) -> None:
        """
        Initialize the sink.

        Args:
            db: The database holding the audit table.
        """
        self.db = db
        self._repository = AuditRepository(db)

    def open(self) -> None:
        self.db.initialize()

    def write(self, entry: AuditEntry) -> None:
        self._repository.insert(entry)

    def read(self, after: int = 0, limit: int = 100, upper: int | None = None) -> list[AuditEntry]:
        return self._repository.list_range(after, limit, upper)

    def last_sequence(self) -> int:
        return self._repository.last_sequence()

    def find(self, request_id: str) -> list[AuditEntry]:
        return self._repository.find_by_request(request_id)

    def count_by_status(self) -> dict[str, int]:
        return self._repository.count_by_status()

    def close(self) -> None:
        self.db.close()

    def describe(self) -> dict[str, Any]:
        return {
            "backend": self.name,
            "path": str(self.db.path),
            "schema_version": self.db.get_schema_version(),
        }


class JsonLinesSink(AuditSink):
    """
    Append-only JSON-lines file.

    Each entry is written as one line and flushed to disk with fsync
    before ``write`` returns.
    """

    name = "jsonl"

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the sink.

        Args:
            path: Path of the JSON-lines file. Created on open.
        """
        self.path = Path(path)
        self._handle: Any = None
        self._last = 0

    def open(self) -> None:
        if self._handle is not None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._repair_tail()
            self._last = 0
            for entry in self._iter_file():
                self._last = entry.sequence
            self._handle = self.path.open("ab")
        except OSError as e:
            raise StorageError(
                f"Failed to open audit file: {e}",
                details={"path": str(self.path)},
            ) from e

    def write(self, entry: AuditEntry) -> None:
        if self._handle is None:
            raise StorageError("Audit file is not open", details={"path": str(self.path)})
        data = (entry.to_json() + "\n").encode("utf-8")
        offset = 0
        try:
            offset = os.fstat(self._handle.fileno()).st_size
            self._handle.write(data)
            self._handle.flush()
            os.fsync(self._handle.fileno())
        except OSError as e:
            self._rollback(offset)
            raise StorageError(
                f"Failed to write audit entry: {e}",
                details={"path": str(self.path), "sequence": entry.sequence},
            ) from e
        self._last = entry.sequence

    def read(self, after: int = 0, limit: int = 100, upper: int | None = None) -> list[AuditEntry]:
        result: list[AuditEntry] = []
        try:
            for entry in self._iter_file():
                if entry.sequence <= after:
                    continue
                if upper is not None and entry.sequence > upper:
                    break
                result.append(entry)
                if len(result) >= limit:
                    break
        except OSError as e:
            raise StorageError(
                f"Failed to read audit file: {e}",
                details={"path": str(self.path)},
            ) from e
        return result

    def last_sequence(self) -> int:
        return self._last

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def describe(self) -> dict[str, Any]:
        return {"backend": self.name, "path": str(self.path)}

    def _repair_tail(self) -> None:
        """
        Make sure the file ends on a line boundary before appending.

        A complete entry missing only its newline is terminated. Anything
        else after the last newline is a partial write and is cut off.
        """
        if not self.path.exists():
            return
        with self.path.open("r+b") as f:
            size = f.seek(0, os.SEEK_END)
            if size == 0:
                return
            f.seek(size - 1)
            if f.read(1) == b"\n":
                return

            keep = 0
            end = size
            while end > 0:
                start = max(0, end - 4096)
                f.seek(start)
                index = f.read(end - start).rfind(b"\n")
                if index >= 0:
                    keep = start + index + 1
                    break
                end = start

            f.seek(keep)
            tail = f.read()
            try:
                AuditEntry.from_dict(json.loads(tail))
            except (ValueError, KeyError, TypeError, ValidationError):
                logger.warning(
                    f"Dropping {size - keep} bytes of partial audit entry at the end of {self.path}"
                )
                f.truncate(keep)
            else:
                f.write(b"\n")
            f.flush()
            os.fsync(f.fileno())

    def _rollback(self, offset: int) -> None:
        """Cut a failed append back to the last complete entry and reopen."""
        handle, self._handle = self._handle, None
        try:
            handle.close()
        except OSError as e:
            logger.warning(f"Error closing audit file {self.path} after failed write: {e}")
        try:
            os.truncate(self.path, offset)
            self._handle = self.path.open("ab")
        except OSError as e:
            # Left closed; the next open() repairs the tail
            logger.error(f"Could not roll back partial audit write in {self.path}: {e}")

    def _iter_file(self) -> Iterator[AuditEntry]:
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield AuditEntry.from_dict(json.loads(line))
                except (ValueError, KeyError, TypeError, ValidationError) as e:
                    # A torn final line is left behind by a crash mid-write
                    logger.warning(f"Skipping unreadable audit line {self.path}:{line_number}: {e}")
