"""
Unit tests for the evaluation coordinator.

Covers ordering, timeouts, faults and invalid verdicts. Slow policies
block on an event released at teardown so no worker outlives the test
for long.
"""

import threading
import time

import pytest

from metagov.engine.coordinator import EvaluationCoordinator, ResultSlot
from metagov.exceptions import EvaluationError
from metagov.models.verdict import Verdict, VerdictStatus
from metagov.policies.base import CallablePolicy
from tests.helpers import BlockingPolicy, RaisingPolicy, fixed_policy, make_request


class TestResultSlot:
    """Tests for ResultSlot."""

    def test_first_offer_wins(self) -> None:
        slot = ResultSlot(fixed_policy("a", 1, VerdictStatus.APPROVE))
        first = Verdict("a", VerdictStatus.APPROVE)
        second = Verdict.unknown("a", "timed out")

        assert slot.offer(first)
        assert not slot.offer(second)
        assert slot.verdict is first
        assert slot.filled


class TestEvaluationCoordinator:
    """Tests for EvaluationCoordinator."""

    def test_rejects_bad_settings(self) -> None:
        with pytest.raises(ValueError):
            EvaluationCoordinator(policy_timeout_ms=0)
        with pytest.raises(ValueError):
            EvaluationCoordinator(worker_pool_size=0)

    def test_empty_policy_list(self, coordinator: EvaluationCoordinator) -> None:
        assert coordinator.evaluate(make_request(), []) == []

    def test_one_verdict_per_policy_in_input_order(
        self, coordinator: EvaluationCoordinator
    ) -> None:
        policies = [
            fixed_policy("a", 1, VerdictStatus.APPROVE),
            fixed_policy("b", 2, VerdictStatus.BLOCK),
            fixed_policy("c", 3, VerdictStatus.CONDITIONAL, conditions=("x",)),
        ]
        verdicts = coordinator.evaluate(make_request(), policies)
        assert [v.policy_name for v in verdicts] == ["a", "b", "c"]
        assert [v.status for v in verdicts] == [
            VerdictStatus.APPROVE,
            VerdictStatus.BLOCK,
            VerdictStatus.CONDITIONAL,
        ]

    def test_order_independent_of_completion_time(
        self, coordinator: EvaluationCoordinator
    ) -> None:
        # The highest-precedence policy finishes last
        policies = [
            fixed_policy("slow", 1, VerdictStatus.APPROVE, delay=0.2),
            fixed_policy("medium", 2, VerdictStatus.APPROVE, delay=0.1),
            fixed_policy("fast", 3, VerdictStatus.APPROVE),
        ]
        verdicts = coordinator.evaluate(make_request(), policies)
        assert [v.policy_name for v in verdicts] == ["slow", "medium", "fast"]

    def test_policies_run_concurrently(self) -> None:
        policies = [fixed_policy(f"p{i}", i, VerdictStatus.APPROVE, delay=0.3) for i in range(4)]
        with EvaluationCoordinator(policy_timeout_ms=5000, worker_pool_size=4) as coordinator:
            started = time.perf_counter()
            coordinator.evaluate(make_request(), policies)
            elapsed = time.perf_counter() - started
        assert elapsed < 1.0

    def test_priority_and_duration_are_stamped(
        self, coordinator: EvaluationCoordinator
    ) -> None:
        policy = CallablePolicy(
            "plain",
            42,
            evaluator=lambda r: Verdict("plain", VerdictStatus.APPROVE),
        )
        verdict = coordinator.evaluate(make_request(), [policy])[0]
        assert verdict.priority == 42
        assert verdict.duration_ms >= 0.0

    def test_timeout_yields_unknown(self, release_event: threading.Event) -> None:
        slow = BlockingPolicy("slow", 1, release_event)
        fast = fixed_policy("fast", 2, VerdictStatus.APPROVE)

        with EvaluationCoordinator(policy_timeout_ms=100, worker_pool_size=4) as coordinator:
            started = time.perf_counter()
            verdicts = coordinator.evaluate(make_request(), [slow, fast])
            elapsed = time.perf_counter() - started

        assert verdicts[0].status == VerdictStatus.UNKNOWN
        assert verdicts[0].rationale == "evaluation timed out after 100 ms"
        assert verdicts[0].priority == 1
        assert verdicts[1].status == VerdictStatus.APPROVE
        assert elapsed < 2.0

    def test_late_verdict_is_discarded(self, release_event: threading.Event) -> None:
        slow = BlockingPolicy("slow", 1, release_event)

        with EvaluationCoordinator(policy_timeout_ms=50, worker_pool_size=2) as coordinator:
            verdicts = coordinator.evaluate(make_request(), [slow])
            release_event.set()
            assert slow.finished.wait(timeout=5.0)

        assert verdicts[0].status == VerdictStatus.UNKNOWN

    def test_hung_policy_does_not_starve_later_requests(
        self, release_event: threading.Event
    ) -> None:
        hung = BlockingPolicy("hung", 1, release_event)
        fast = fixed_policy("fast", 2, VerdictStatus.APPROVE)

        with EvaluationCoordinator(policy_timeout_ms=100, worker_pool_size=2) as coordinator:
            for _ in range(2):
                verdict = coordinator.evaluate(make_request(), [hung])[0]
                assert verdict.status == VerdictStatus.UNKNOWN
            assert coordinator.stuck == 2

            verdicts = coordinator.evaluate(make_request(), [fast])
            assert verdicts[0].status == VerdictStatus.APPROVE

            release_event.set()
            deadline = time.monotonic() + 5.0
            while coordinator.stuck and time.monotonic() < deadline:
                time.sleep(0.01)
            assert coordinator.stuck == 0

    def test_fault_yields_unknown(self, coordinator: EvaluationCoordinator) -> None:
        policies = [
            RaisingPolicy("broken", 1, ValueError("bad input")),
            fixed_policy("ok", 2, VerdictStatus.APPROVE),
        ]
        verdicts = coordinator.evaluate(make_request(), policies)
        assert verdicts[0].status == VerdictStatus.UNKNOWN
        assert verdicts[0].rationale == "evaluation failed: ValueError: bad input"
        assert verdicts[1].status == VerdictStatus.APPROVE

    def test_non_verdict_result_yields_unknown(self, coordinator: EvaluationCoordinator) -> None:
        policy = CallablePolicy("sloppy", 1, evaluator=lambda r: "APPROVE")  # type: ignore[arg-type, return-value]
        verdict = coordinator.evaluate(make_request(), [policy])[0]
        assert verdict.status == VerdictStatus.UNKNOWN
        assert verdict.rationale == "invalid verdict: expected Verdict, got str"

    def test_verdict_for_other_policy_yields_unknown(
        self, coordinator: EvaluationCoordinator
    ) -> None:
        policy = CallablePolicy(
            "impostor",
            1,
            evaluator=lambda r: Verdict("guardrails", VerdictStatus.APPROVE),
        )
        verdict = coordinator.evaluate(make_request(), [policy])[0]
        assert verdict.policy_name == "impostor"
        assert verdict.status == VerdictStatus.UNKNOWN
        assert "reported policy 'guardrails'" in verdict.rationale

    def test_closed_coordinator_raises(self) -> None:
        coordinator = EvaluationCoordinator()
        coordinator.close()
        assert coordinator.closed
        with pytest.raises(EvaluationError):
            coordinator.evaluate(make_request(), [fixed_policy("a", 1, VerdictStatus.APPROVE)])

    def test_from_config(self, test_config) -> None:  # type: ignore[no-untyped-def]
        coordinator = EvaluationCoordinator.from_config(test_config.governance)
        try:
            assert coordinator.policy_timeout_ms == 1000.0
            assert coordinator.worker_pool_size == 8
        finally:
            coordinator.close()
