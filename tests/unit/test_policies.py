"""
Unit tests for the Policy interface and the built-in meta-skills.
"""

import pytest

from metagov.models.verdict import Verdict, VerdictStatus
from metagov.policies.base import CallablePolicy, Policy
from metagov.policies.builtin import (
    BUILTIN_POLICY_CLASSES,
    CanaryFlagPolicy,
    ChecklistPolicy,
    CicdGatePolicy,
    GuardrailsPolicy,
    MigrationPolicy,
    ProductionReadinessPolicy,
    QaPolicy,
    RegressionPolicy,
    ReleaseGatePolicy,
    Requirement,
    default_policies,
    describe_policy,
)
from tests.helpers import make_request


class TestPolicyBase:
    """Tests for the Policy base class."""

    def test_requires_name(self) -> None:
        with pytest.raises(ValueError):
            CallablePolicy("", 1, evaluator=lambda r: Verdict("x", VerdictStatus.APPROVE))

    @pytest.mark.parametrize("priority", ["1", 1.5, True, None])
    def test_priority_must_be_int(self, priority: object) -> None:
        with pytest.raises(ValueError):
            CallablePolicy("p", priority, evaluator=lambda r: Verdict("p", VerdictStatus.APPROVE))  # type: ignore[arg-type]

    def test_default_applies_to_everything(self) -> None:
        class Always(Policy):
            def evaluate(self, request):  # type: ignore[no-untyped-def]
                return self.approve()

        assert Always("always", 10).applies_to(frozenset())

    def test_verdict_builders_stamp_name_and_priority(self) -> None:
        policy = CallablePolicy("p", 12, evaluator=lambda r: Verdict("p", VerdictStatus.APPROVE))
        verdict = policy.conditional("needs work", ["a", "b"])
        assert verdict.policy_name == "p"
        assert verdict.priority == 12
        assert verdict.conditions == ("a", "b")
        assert policy.block("no").status == VerdictStatus.BLOCK

    def test_callable_policy_predicate(self) -> None:
        policy = CallablePolicy(
            "license-check",
            30,
            evaluator=lambda r: Verdict("license-check", VerdictStatus.APPROVE),
            predicate=lambda tags: "dependency-update" in tags,
        )
        assert policy.applies_to(frozenset({"dependency-update"}))
        assert not policy.applies_to(frozenset({"docs-change"}))


class TestBuiltinCatalog:
    """Tests for the eight built-in meta-skills as a set."""

    def test_canonical_priorities(self) -> None:
        policies = default_policies()
        assert [(p.priority, p.name) for p in policies] == [
            (1, "guardrails"),
            (2, "migration-only"),
            (3, "regression"),
            (4, "production-readiness"),
            (5, "canary-feature-flag"),
            (6, "cicd-release-gate"),
            (7, "qa"),
            (8, "release-gate"),
        ]

    def test_only_guardrails_is_mandatory(self) -> None:
        mandatory = [p.name for p in default_policies() if p.mandatory]
        assert mandatory == ["guardrails"]

    def test_default_policies_are_fresh_instances(self) -> None:
        first = default_policies()
        second = default_policies()
        assert all(a is not b for a, b in zip(first, second))
        assert len(BUILTIN_POLICY_CLASSES) == 8

    def test_describe_policy(self) -> None:
        info = describe_policy(MigrationPolicy())
        assert info["name"] == "migration-only"
        assert info["priority"] == 2
        assert "database-change" in info["triggers"]
        assert info["required_evidence"] == ["rollback-plan", "backup-verified"]
        assert info["missing_evidence_status"] == "BLOCK"


class TestGuardrailsPolicy:
    """Tests for the guardrails meta-skill."""

    def test_applies_to_empty_tags(self) -> None:
        assert GuardrailsPolicy().applies_to(frozenset())

    def test_approves_plain_change(self) -> None:
        verdict = GuardrailsPolicy().evaluate(make_request("docs-change"))
        assert verdict.status == VerdictStatus.APPROVE

    def test_blocks_exposed_secrets(self) -> None:
        verdict = GuardrailsPolicy().evaluate(make_request("secrets-exposed"))
        assert verdict.status == VerdictStatus.BLOCK
        assert "secrets" in verdict.rationale

    def test_security_change_needs_review(self) -> None:
        verdict = GuardrailsPolicy().evaluate(make_request("security-change"))
        assert verdict.status == VerdictStatus.CONDITIONAL
        assert verdict.conditions == ("Obtain a security review of the change",)

    def test_security_change_with_review_approves(self) -> None:
        verdict = GuardrailsPolicy().evaluate(make_request("security-change", "security-review"))
        assert verdict.status == VerdictStatus.APPROVE


class TestMigrationPolicy:
    """Tests for the migration-only meta-skill."""

    def test_triggers(self) -> None:
        policy = MigrationPolicy()
        assert policy.applies_to(frozenset({"schema-change"}))
        assert not policy.applies_to(frozenset({"feature"}))

    def test_missing_evidence_blocks(self) -> None:
        verdict = MigrationPolicy().evaluate(make_request("database-change", "rollback-plan"))
        assert verdict.status == VerdictStatus.BLOCK
        assert "backup-verified" in verdict.rationale

    def test_mixed_migration_blocks_even_with_evidence(self) -> None:
        verdict = MigrationPolicy().evaluate(
            make_request("database-change", "mixed-migration", "rollback-plan", "backup-verified")
        )
        assert verdict.status == VerdictStatus.BLOCK
        assert "separately" in verdict.rationale

    def test_complete_evidence_approves(self) -> None:
        verdict = MigrationPolicy().evaluate(
            make_request("database-change", "rollback-plan", "backup-verified")
        )
        assert verdict.status == VerdictStatus.APPROVE


class TestConditionalPolicies:
    """Tests for meta-skills that report missing evidence as conditions."""

    def test_qa_feature_needs_integration_test(self) -> None:
        verdict = QaPolicy().evaluate(make_request("feature", "qa-signoff"))
        assert verdict.status == VerdictStatus.CONDITIONAL
        assert verdict.conditions == ("add integration test",)

    def test_qa_bug_fix_does_not_need_integration_test(self) -> None:
        verdict = QaPolicy().evaluate(make_request("bug-fix", "qa-signoff"))
        assert verdict.status == VerdictStatus.APPROVE

    def test_regression_conditions_in_checklist_order(self) -> None:
        verdict = RegressionPolicy().evaluate(make_request("bug-fix"))
        assert verdict.status == VerdictStatus.CONDITIONAL
        assert verdict.conditions == (
            "Run the existing test suite to green",
            "Add a regression test reproducing the fixed bug",
        )

    def test_regression_blocks_on_failing_tests(self) -> None:
        verdict = RegressionPolicy().evaluate(make_request("code-change", "tests-failing"))
        assert verdict.status == VerdictStatus.BLOCK

    def test_canary_metrics_only_for_canaries(self) -> None:
        tags = ("user-facing-change", "feature-flag-configured", "kill-switch")
        assert CanaryFlagPolicy().evaluate(make_request(*tags)).status == VerdictStatus.APPROVE
        verdict = CanaryFlagPolicy().evaluate(make_request(*tags, "canary"))
        assert verdict.conditions == ("Define the canary success metrics",)

    def test_cicd_gate(self) -> None:
        assert CicdGatePolicy().evaluate(make_request("release", "ci-failing")).status == VerdictStatus.BLOCK
        assert CicdGatePolicy().evaluate(make_request("release", "ci-green")).status == VerdictStatus.APPROVE


class TestBlockingGates:
    """Tests for meta-skills that block on missing evidence."""

    def test_production_readiness_blocks_without_monitoring(self) -> None:
        verdict = ProductionReadinessPolicy().evaluate(
            make_request("production-deploy", "rollback-plan")
        )
        assert verdict.status == VerdictStatus.BLOCK
        assert "monitoring-configured" in verdict.rationale

    def test_release_gate_blocks_during_freeze(self) -> None:
        verdict = ReleaseGatePolicy().evaluate(
            make_request("release", "release-freeze", "changelog-updated", "release-approved")
        )
        assert verdict.status == VerdictStatus.BLOCK
        assert verdict.rationale == "A release freeze is in effect"

    def test_release_gate_approves_with_evidence(self) -> None:
        verdict = ReleaseGatePolicy().evaluate(
            make_request("release", "changelog-updated", "release-approved")
        )
        assert verdict.status == VerdictStatus.APPROVE
        assert verdict.rationale == "All 2 checklist items satisfied"


class TestChecklistPolicy:
    """Tests for custom checklist policies."""

    def test_constructor_overrides(self) -> None:
        policy = ChecklistPolicy(
            name="docs",
            priority=20,
            triggers=["Docs-Change"],
            requirements=[Requirement("docs-reviewed", "Get the docs reviewed")],
        )
        assert policy.applies_to(frozenset({"docs-change"}))
        verdict = policy.evaluate(make_request("docs-change"))
        assert verdict.status == VerdictStatus.CONDITIONAL
        assert verdict.conditions == ("Get the docs reviewed",)

    def test_rejects_approve_as_missing_status(self) -> None:
        with pytest.raises(ValueError):
            ChecklistPolicy(
                name="docs",
                priority=20,
                triggers=["docs-change"],
                missing_evidence_status=VerdictStatus.APPROVE,
            )

    def test_no_requirements_approves(self) -> None:
        policy = ChecklistPolicy(name="noop", priority=30, triggers=["x"])
        assert policy.evaluate(make_request("x")).rationale == "No checklist items apply"
