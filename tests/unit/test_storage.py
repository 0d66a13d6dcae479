"""
Unit tests for the SQLite storage layer.
"""

from pathlib import Path
from typing import Generator

import pytest

from metagov.exceptions import StorageError
from metagov.models.audit import AuditEntry, SkippedPolicy
from metagov.models.decision import Decision, DecisionStatus
from metagov.storage.database import Database
from metagov.storage.repositories import AuditRepository
from metagov.storage.schema import SCHEMA_VERSION, TABLES
from tests.helpers import make_request


def make_entry(sequence: int, request_id: str, status: DecisionStatus = DecisionStatus.APPROVED) -> AuditEntry:
    request = make_request("release", request_id=request_id)
    decision = Decision(request_id, status, "release-gate", reason="test")
    return AuditEntry(
        sequence=sequence,
        request=request,
        decision=decision,
        skipped=(SkippedPolicy("qa", 7, "not applicable"),),
    )


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


class TestDatabase:
    """Tests for the Database wrapper."""

    def test_initialize_creates_tables(self, memory_db: Database) -> None:
        rows = memory_db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {row["name"] for row in rows}
        assert set(TABLES) <= names

    def test_schema_version(self, memory_db: Database) -> None:
        assert memory_db.get_schema_version() == SCHEMA_VERSION

    def test_initialize_is_idempotent(self, memory_db: Database) -> None:
        memory_db.initialize()
        assert memory_db.get_schema_version() == SCHEMA_VERSION

    def test_in_memory_database_is_shared(self, memory_db: Database) -> None:
        # Every call must see the same in-memory database
        memory_db.execute_write(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (99, "shared check"),
        )
        assert memory_db.get_schema_version() == 99

    def test_file_database_creates_parent(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "audit.db"
        with Database(path) as db:
            db.initialize()
            assert db.initialized
        assert path.exists()

    def test_bad_sql_raises_storage_error(self, memory_db: Database) -> None:
        with pytest.raises(StorageError):
            memory_db.execute("SELECT * FROM missing_table")

    def test_close_resets_initialized(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "audit.db")
        db.initialize()
        assert db.initialized
        db.close()
        assert not db.initialized


class TestAuditRepository:
    """Tests for AuditRepository."""

    @pytest.fixture
    def repo(self, memory_db: Database) -> AuditRepository:
        return AuditRepository(memory_db)

    def test_insert_and_list(self, repo: AuditRepository) -> None:
        repo.insert(make_entry(1, "req-1"))
        repo.insert(make_entry(2, "req-2", DecisionStatus.BLOCKED))

        entries = repo.list_range()
        assert [e.sequence for e in entries] == [1, 2]
        assert entries[1].decision.final_status == DecisionStatus.BLOCKED
        assert entries[0].skipped == (SkippedPolicy("qa", 7, "not applicable"),)

    def test_duplicate_sequence_rejected(self, repo: AuditRepository) -> None:
        repo.insert(make_entry(1, "req-1"))
        with pytest.raises(StorageError):
            repo.insert(make_entry(1, "req-other"))

    def test_list_range_bounds(self, repo: AuditRepository) -> None:
        for i in range(1, 6):
            repo.insert(make_entry(i, f"req-{i}"))

        assert [e.sequence for e in repo.list_range(after=2, limit=2)] == [3, 4]
        assert [e.sequence for e in repo.list_range(after=0, upper=3)] == [1, 2, 3]

    def test_last_sequence(self, repo: AuditRepository) -> None:
        assert repo.last_sequence() == 0
        repo.insert(make_entry(1, "req-1"))
        assert repo.last_sequence() == 1

    def test_find_by_request(self, repo: AuditRepository) -> None:
        repo.insert(make_entry(1, "req-1"))
        repo.insert(make_entry(2, "req-2"))
        repo.insert(make_entry(3, "req-1"))
        assert [e.sequence for e in repo.find_by_request("req-1")] == [1, 3]

    def test_count_by_status(self, repo: AuditRepository) -> None:
        repo.insert(make_entry(1, "req-1"))
        repo.insert(make_entry(2, "req-2", DecisionStatus.BLOCKED))
        repo.insert(make_entry(3, "req-3", DecisionStatus.BLOCKED))
        assert repo.count_by_status() == {"APPROVED": 1, "BLOCKED": 2}
