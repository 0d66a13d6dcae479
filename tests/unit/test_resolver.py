"""
Unit tests for the conflict resolver.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from metagov.engine.resolver import ConflictResolver
from metagov.models.decision import DecisionStatus
from metagov.models.verdict import Verdict, VerdictStatus
from tests.helpers import assert_decision, make_verdict

APPROVE = VerdictStatus.APPROVE
BLOCK = VerdictStatus.BLOCK
CONDITIONAL = VerdictStatus.CONDITIONAL
UNKNOWN = VerdictStatus.UNKNOWN


@pytest.fixture
def resolver() -> ConflictResolver:
    return ConflictResolver()


class TestScenarios:
    """The reference scenarios for conflict resolution."""

    def test_release_gate_block_dominates_approvals(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("guardrails", APPROVE, 1),
                make_verdict("regression", APPROVE, 3),
                make_verdict("release-gate", BLOCK, 8, rationale="A release freeze is in effect"),
            ],
            request_id="req-a",
        )
        assert_decision(decision, DecisionStatus.BLOCKED, "release-gate")
        assert decision.reason == "A release freeze is in effect"
        assert decision.conditions == ()

    def test_qa_condition_makes_decision_conditional(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("guardrails", APPROVE, 1),
                make_verdict("qa", CONDITIONAL, 7, conditions=("add integration test",)),
            ]
        )
        assert_decision(decision, DecisionStatus.CONDITIONAL, "qa")
        assert decision.conditions == ("add integration test",)

    def test_timed_out_high_precedence_policy_blocks(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("guardrails", APPROVE, 1),
                Verdict.unknown("migration-only", "evaluation timed out after 5000 ms", priority=2),
                make_verdict("qa", APPROVE, 7),
            ]
        )
        assert_decision(decision, DecisionStatus.BLOCKED, "migration-only")
        assert decision.reason == (
            "migration-only could not complete: evaluation timed out after 5000 ms"
        )

    def test_guardrails_alone_approves(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve([make_verdict("guardrails", APPROVE, 1)])
        assert_decision(decision, DecisionStatus.APPROVED, "guardrails")
        assert decision.reason == "Approved by 1 policies"


class TestPrecedence:
    """Tests for priority-ordered resolution rules."""

    def test_highest_precedence_block_dominates(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("release-gate", BLOCK, 8),
                make_verdict("migration-only", BLOCK, 2),
                make_verdict("guardrails", APPROVE, 1),
            ]
        )
        assert decision.dominant_policy == "migration-only"

    def test_block_beats_higher_precedence_conditional(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("guardrails", CONDITIONAL, 1, conditions=("review",)),
                make_verdict("release-gate", BLOCK, 8),
            ]
        )
        assert_decision(decision, DecisionStatus.BLOCKED, "release-gate")
        assert decision.conditions == ()

    def test_unknown_and_block_first_in_priority_order_wins(
        self, resolver: ConflictResolver
    ) -> None:
        decision = resolver.resolve(
            [
                make_verdict("regression", BLOCK, 3),
                Verdict.unknown("migration-only", "evaluation failed: boom", priority=2),
            ]
        )
        assert decision.dominant_policy == "migration-only"

    def test_unknown_never_approves(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("guardrails", APPROVE, 1),
                Verdict.unknown("release-gate", "evaluation failed", priority=8),
            ]
        )
        assert decision.final_status == DecisionStatus.BLOCKED

    def test_conditions_concatenate_in_priority_order(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("qa", CONDITIONAL, 7, conditions=("add integration test", "Obtain QA sign-off")),
                make_verdict("guardrails", APPROVE, 1),
                make_verdict("regression", CONDITIONAL, 3, conditions=("Run the suite",)),
            ]
        )
        assert_decision(decision, DecisionStatus.CONDITIONAL, "regression")
        assert decision.conditions == (
            "Run the suite",
            "add integration test",
            "Obtain QA sign-off",
        )

    def test_verdicts_are_recorded_in_priority_order(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("qa", APPROVE, 7),
                make_verdict("guardrails", APPROVE, 1),
                make_verdict("regression", APPROVE, 3),
            ]
        )
        assert [v.policy_name for v in decision.verdicts] == ["guardrails", "regression", "qa"]
        assert decision.dominant_policy == "guardrails"
        assert decision.reason == "Approved by 3 policies"

    def test_input_order_used_without_priorities(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve(
            [
                make_verdict("second", BLOCK),
                make_verdict("first", BLOCK),
            ]
        )
        assert decision.dominant_policy == "second"

    def test_mixed_priorities_keep_input_order_and_log(
        self, resolver: ConflictResolver, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="metagov.engine.resolver"):
            ordered = resolver.order(
                [
                    make_verdict("qa", APPROVE, 7),
                    make_verdict("adhoc", BLOCK),
                    make_verdict("guardrails", APPROVE, 1),
                ]
            )

        assert [v.policy_name for v in ordered] == ["qa", "adhoc", "guardrails"]
        assert "Verdicts without priority (adhoc); keeping input order" in caplog.text


class TestResolverContract:
    """Tests for determinism and argument handling."""

    def test_empty_verdicts_rejected(self, resolver: ConflictResolver) -> None:
        with pytest.raises(ValueError):
            resolver.resolve([])

    def test_resolve_is_idempotent(self, resolver: ConflictResolver) -> None:
        verdicts = [
            make_verdict("guardrails", APPROVE, 1),
            make_verdict("qa", CONDITIONAL, 7, conditions=("add integration test",)),
        ]
        assert resolver.resolve(verdicts, request_id="r") == resolver.resolve(verdicts, request_id="r")

    def test_decided_at_defaults_to_latest_evaluation(self, resolver: ConflictResolver) -> None:
        early = datetime(2026, 1, 1, tzinfo=timezone.utc)
        late = early + timedelta(seconds=5)
        decision = resolver.resolve(
            [
                Verdict("a", APPROVE, evaluated_at=late, priority=1),
                Verdict("b", APPROVE, evaluated_at=early, priority=2),
            ]
        )
        assert decision.decided_at == late

    def test_explicit_decided_at(self, resolver: ConflictResolver) -> None:
        when = datetime(2026, 6, 1, tzinfo=timezone.utc)
        decision = resolver.resolve([make_verdict("a", APPROVE, 1)], decided_at=when)
        assert decision.decided_at == when

    def test_request_id_is_carried(self, resolver: ConflictResolver) -> None:
        decision = resolver.resolve([make_verdict("a", APPROVE, 1)], request_id="req-9")
        assert decision.request_id == "req-9"
