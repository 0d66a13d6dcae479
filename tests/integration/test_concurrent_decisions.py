"""
Integration tests for concurrent use of the governance facade.

Many threads decide requests against one facade and one audit store;
every decision must be recorded exactly once with its own sequence
number, and verdicts must always come back in priority order.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from metagov.audit.log import AuditLog
from metagov.audit.sinks import JsonLinesSink, MemorySink, SQLiteSink
from metagov.engine.coordinator import EvaluationCoordinator
from metagov.engine.governance import GovernanceFacade
from metagov.engine.registry import PolicyRegistry
from metagov.models.decision import Decision, DecisionStatus
from metagov.storage.database import Database
from tests.helpers import make_request

TAG_SETS = [
    ("docs-change",),
    ("database-change",),
    ("database-change", "rollback-plan", "backup-verified"),
    ("feature", "code-change"),
    ("release", "production-deploy", "ci-change"),
]

THREADS = 8
REQUESTS = 40


@pytest.fixture(params=["memory", "sqlite", "jsonl"])
def shared_facade(request: pytest.FixtureRequest, tmp_path: Path):  # type: ignore[no-untyped-def]
    """Facade over each audit backend."""
    if request.param == "memory":
        sink = MemorySink()
    elif request.param == "sqlite":
        sink = SQLiteSink(Database(tmp_path / "audit.db"))
    else:
        sink = JsonLinesSink(tmp_path / "audit.jsonl")

    facade = GovernanceFacade(
        registry=PolicyRegistry.with_defaults(),
        coordinator=EvaluationCoordinator(policy_timeout_ms=5000, worker_pool_size=8),
        audit_log=AuditLog(sink),
    )
    yield facade
    facade.close()


class TestConcurrentDecisions:
    """Tests for many callers deciding at once."""

    def decide_all(self, facade: GovernanceFacade) -> list[Decision]:
        start = threading.Barrier(THREADS, timeout=10)

        def decide(index: int) -> Decision:
            if index < THREADS:
                start.wait()
            tags = TAG_SETS[index % len(TAG_SETS)]
            return facade.decide(make_request(*tags, request_id=f"req-{index:03d}"))

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            return list(pool.map(decide, range(REQUESTS)))

    def test_every_decision_is_recorded_once(self, shared_facade: GovernanceFacade) -> None:
        self.decide_all(shared_facade)

        entries = list(shared_facade.audit_log.entries())
        assert [e.sequence for e in entries] == list(range(1, REQUESTS + 1))
        assert sorted(e.request_id for e in entries) == [f"req-{i:03d}" for i in range(REQUESTS)]

    def test_verdicts_are_in_priority_order(self, shared_facade: GovernanceFacade) -> None:
        for decision in self.decide_all(shared_facade):
            priorities = [v.priority for v in decision.verdicts]
            assert priorities == sorted(priorities)
            assert priorities[0] == 1

    def test_outcomes_match_sequential_decisions(self, shared_facade: GovernanceFacade) -> None:
        decisions = self.decide_all(shared_facade)

        expected = {
            0: DecisionStatus.APPROVED,
            1: DecisionStatus.BLOCKED,
            2: DecisionStatus.APPROVED,
            3: DecisionStatus.CONDITIONAL,
            4: DecisionStatus.BLOCKED,
        }
        for index, decision in enumerate(decisions):
            assert decision.final_status == expected[index % len(TAG_SETS)]
            assert decision.request_id == f"req-{index:03d}"
