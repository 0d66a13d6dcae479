"""
Pytest configuration and shared fixtures for MetaGov tests.

This module provides:
- Logging and environment isolation
- Request fixtures
- Registry and coordinator fixtures
- Audit log fixtures (memory, SQLite, JSON lines)
- A fully wired governance facade
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Generator

import pytest

from metagov.audit.log import AuditLog
from metagov.audit.sinks import JsonLinesSink, MemorySink, SQLiteSink
from metagov.config.defaults import get_test_config
from metagov.config.log_setup import ROOT_LOGGER
from metagov.config.schema import MetaGovConfig
from metagov.engine.coordinator import EvaluationCoordinator
from metagov.engine.governance import GovernanceFacade
from metagov.engine.registry import PolicyRegistry
from metagov.models.request import ChangeRequest
from metagov.storage.database import Database
from tests.helpers import make_request


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_metagov_logger() -> Generator[None, None, None]:
    """Drop handlers and levels the CLI installs on the metagov logger."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_metagov_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep METAGOV_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("METAGOV_"):
            monkeypatch.delenv(name, raising=False)


# =============================================================================
# Request Fixtures
# =============================================================================


@pytest.fixture
def plain_request() -> ChangeRequest:
    """A request no built-in trigger matches."""
    return make_request("docs-change", request_id="req-plain")


@pytest.fixture
def migration_request() -> ChangeRequest:
    """A database change with all migration evidence."""
    return make_request(
        "database-change",
        "rollback-plan",
        "backup-verified",
        request_id="req-migration",
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def release_event() -> Generator[threading.Event, None, None]:
    """Event that unblocks BlockingPolicy workers at teardown."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def default_registry() -> PolicyRegistry:
    """Registry with the eight built-in meta-skills."""
    return PolicyRegistry.with_defaults()


@pytest.fixture
def coordinator() -> Generator[EvaluationCoordinator, None, None]:
    """Coordinator with a short timeout for tests."""
    coord = EvaluationCoordinator(policy_timeout_ms=1000, worker_pool_size=8)
    yield coord
    coord.close()


# =============================================================================
# Audit Fixtures
# =============================================================================


@pytest.fixture
def memory_audit_log() -> Generator[AuditLog, None, None]:
    """Opened audit log on an in-process sink."""
    log = AuditLog(MemorySink())
    log.open()
    yield log
    log.close()


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    """Path for a temporary SQLite audit store."""
    return tmp_path / "audit" / "metagov_audit.db"


@pytest.fixture
def sqlite_audit_log(sqlite_path: Path) -> Generator[AuditLog, None, None]:
    """Opened audit log on a temporary SQLite file."""
    log = AuditLog(SQLiteSink(Database(sqlite_path)))
    log.open()
    yield log
    log.close()


@pytest.fixture
def jsonl_audit_log(tmp_path: Path) -> Generator[AuditLog, None, None]:
    """Opened audit log on a temporary JSON-lines file."""
    log = AuditLog(JsonLinesSink(tmp_path / "audit.jsonl"))
    log.open()
    yield log
    log.close()


# =============================================================================
# Facade Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> MetaGovConfig:
    """Configuration using the memory audit backend."""
    return get_test_config()


@pytest.fixture
def facade(memory_audit_log: AuditLog) -> Generator[GovernanceFacade, None, None]:
    """Governance facade over the built-in meta-skills."""
    gov = GovernanceFacade(
        registry=PolicyRegistry.with_defaults(),
        coordinator=EvaluationCoordinator(policy_timeout_ms=2000, worker_pool_size=8),
        audit_log=memory_audit_log,
    )
    yield gov
    gov.close()
