"""
Built-in meta-skill policies for MetaGov.

The eight meta-skills are implemented as declarative checklists over
request tags. A checklist policy applies when any of its trigger tags
is present, blocks on any blocking signal, and requires evidence tags
for each of its checklist items. Missing evidence yields either a
CONDITIONAL verdict listing what is still needed, or a BLOCK for gates
where proceeding without evidence is not acceptable.

Canonical precedence (lower number dominates):

    1 guardrails            5 canary-feature-flag
    2 migration-only        6 cicd-release-gate
    3 regression            7 qa
    4 production-readiness  8 release-gate
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from metagov.models.request import ChangeRequest, normalize_tags
from metagov.models.verdict import Verdict, VerdictStatus
from metagov.policies.base import Policy


@dataclass(frozen=True)
class Requirement:
    """
    One evidence item on a checklist.

    Attributes:
        evidence: Tag that proves the item is satisfied.
        condition: What must be done when the evidence is missing.
        when: Tags that activate the requirement. Empty means the
            requirement applies whenever the policy runs.
    """

    evidence: str
    condition: str
    when: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "evidence", self.evidence.strip().lower())
        object.__setattr__(self, "when", normalize_tags(self.when))

    def is_active(self, tags: frozenset[str]) -> bool:
        """Check whether the requirement applies to these tags."""
        return not self.when or bool(self.when & tags)

    def is_met(self, tags: frozenset[str]) -> bool:
        """Check whether the evidence tag is present."""
        return self.evidence in tags


class ChecklistPolicy(Policy):
    """
    Declarative tag-driven policy.

    Subclasses set the class attributes; instances built from policy
    packs pass them to the constructor instead.

    Attributes:
        triggers: Tags that make the policy applicable (any-of).
        blocking_signals: Mapping of tag to the reason it blocks.
        requirements: Checklist items, in reporting order.
        missing_evidence_status: Verdict for unmet requirements;
            CONDITIONAL or BLOCK.
    """

    NAME: str = ""
    PRIORITY: int = 0
    MANDATORY: bool = False
    DESCRIPTION: str = ""
    TRIGGERS: tuple[str, ...] = ()
    BLOCKING_SIGNALS: Mapping[str, str] = {}
    REQUIREMENTS: tuple[Requirement, ...] = ()
    MISSING_EVIDENCE_STATUS: VerdictStatus = VerdictStatus.CONDITIONAL

    def __init__(
        self,
        name: str | None = None,
        priority: int | None = None,
        mandatory: bool | None = None,
        description: str | None = None,
        triggers: Iterable[str] | None = None,
        blocking_signals: Mapping[str, str] | None = None,
        requirements: Iterable[Requirement] | None = None,
        missing_evidence_status: VerdictStatus | None = None,
    ) -> None:
        super().__init__(
            name=name if name is not None else self.NAME,
            priority=priority if priority is not None else self.PRIORITY,
            mandatory=mandatory if mandatory is not None else self.MANDATORY,
            description=description if description is not None else self.DESCRIPTION,
        )
        self.triggers = normalize_tags(triggers if triggers is not None else self.TRIGGERS)
        signals = blocking_signals if blocking_signals is not None else self.BLOCKING_SIGNALS
        self.blocking_signals = {k.strip().lower(): v for k, v in signals.items()}
        self.requirements = tuple(
            requirements if requirements is not None else self.REQUIREMENTS
        )
        status = (
            missing_evidence_status
            if missing_evidence_status is not None
            else self.MISSING_EVIDENCE_STATUS
        )
        if status not in (VerdictStatus.CONDITIONAL, VerdictStatus.BLOCK):
            raise ValueError(
                f"missing_evidence_status must be CONDITIONAL or BLOCK, got {status.value}"
            )
        self.missing_evidence_status = status

    def applies_to(self, tags: frozenset[str]) -> bool:
        """Mandatory policies always apply; others need a trigger tag."""
        if self.mandatory:
            return True
        return bool(self.triggers & tags)

    def evaluate(self, request: ChangeRequest) -> Verdict:
        """Check blocking signals first, then the evidence checklist."""
        tags = request.tags

        blocked = [reason for tag, reason in self.blocking_signals.items() if tag in tags]
        if blocked:
            return self.block("; ".join(blocked))

        active = [r for r in self.requirements if r.is_active(tags)]
        missing = [r for r in active if not r.is_met(tags)]

        if not missing:
            if not active:
                return self.approve("No checklist items apply")
            return self.approve(f"All {len(active)} checklist items satisfied")

        evidence = ", ".join(r.evidence for r in missing)
        if self.missing_evidence_status == VerdictStatus.BLOCK:
            return self.block(f"Missing required evidence: {evidence}")
        return self.conditional(
            f"Missing evidence: {evidence}",
            [r.condition for r in missing],
        )


class GuardrailsPolicy(ChecklistPolicy):
    """Baseline safety guardrails. Runs for every change and is never skipped."""

    NAME = "guardrails"
    PRIORITY = 1
    MANDATORY = True
    DESCRIPTION = "Baseline safety rules applied to every change"
    BLOCKING_SIGNALS = {
        "secrets-exposed": "Change exposes credentials or secrets",
        "guardrail-bypass": "Change disables or bypasses a safety guardrail",
    }
    REQUIREMENTS = (
        Requirement(
            "security-review",
            "Obtain a security review of the change",
            when=frozenset({"security-change"}),
        ),
        Requirement(
            "human-confirmation",
            "Get explicit human confirmation for the destructive operation",
            when=frozenset({"destructive-operation"}),
        ),
    )

    def applies_to(self, tags: frozenset[str]) -> bool:
        """Guardrails apply to every request."""
        return True


class MigrationPolicy(ChecklistPolicy):
    """Schema and data migrations ship alone and with a way back."""

    NAME = "migration-only"
    PRIORITY = 2
    DESCRIPTION = "Database and data migration safety gate"
    TRIGGERS = ("database-change", "schema-change", "data-migration")
    BLOCKING_SIGNALS = {
        "mixed-migration": "Migrations must ship separately from application changes",
    }
    REQUIREMENTS = (
        Requirement("rollback-plan", "Provide a tested rollback plan for the migration"),
        Requirement("backup-verified", "Verify a restorable backup exists before migrating"),
    )
    MISSING_EVIDENCE_STATUS = VerdictStatus.BLOCK


class RegressionPolicy(ChecklistPolicy):
    """Existing behavior keeps working."""

    NAME = "regression"
    PRIORITY = 3
    DESCRIPTION = "Regression protection for code changes"
    TRIGGERS = ("code-change", "bug-fix", "refactor", "dependency-update")
    BLOCKING_SIGNALS = {
        "tests-failing": "Existing tests are failing",
    }
    REQUIREMENTS = (
        Requirement("tests-passing", "Run the existing test suite to green"),
        Requirement(
            "regression-test",
            "Add a regression test reproducing the fixed bug",
            when=frozenset({"bug-fix"}),
        ),
    )


class ProductionReadinessPolicy(ChecklistPolicy):
    """Production deployments are observable and reversible."""

    NAME = "production-readiness"
    PRIORITY = 4
    DESCRIPTION = "Operational readiness for production deployments"
    TRIGGERS = ("production-deploy", "infrastructure-change")
    BLOCKING_SIGNALS = {
        "debug-enabled": "Debug mode must be disabled in production",
    }
    REQUIREMENTS = (
        Requirement("monitoring-configured", "Configure monitoring and alerting"),
        Requirement("rollback-plan", "Provide a rollback plan for the deployment"),
    )
    MISSING_EVIDENCE_STATUS = VerdictStatus.BLOCK


class CanaryFlagPolicy(ChecklistPolicy):
    """User-facing changes roll out gradually behind a flag."""

    NAME = "canary-feature-flag"
    PRIORITY = 5
    DESCRIPTION = "Gradual rollout behind feature flags"
    TRIGGERS = ("feature-flag", "canary", "gradual-rollout", "user-facing-change")
    REQUIREMENTS = (
        Requirement("feature-flag-configured", "Gate the change behind a feature flag"),
        Requirement("kill-switch", "Document how to turn the feature off"),
        Requirement(
            "canary-metrics",
            "Define the canary success metrics",
            when=frozenset({"canary", "gradual-rollout"}),
        ),
    )


class CicdGatePolicy(ChecklistPolicy):
    """The pipeline is green and no checks were skipped."""

    NAME = "cicd-release-gate"
    PRIORITY = 6
    DESCRIPTION = "CI/CD pipeline gate"
    TRIGGERS = ("ci-change", "pipeline-change", "release")
    BLOCKING_SIGNALS = {
        "ci-failing": "CI pipeline is failing",
        "checks-skipped": "Required CI checks were skipped",
    }
    REQUIREMENTS = (
        Requirement("ci-green", "Get a green CI run on the release commit"),
    )


class QaPolicy(ChecklistPolicy):
    """Quality assurance sign-off for behavior changes."""

    NAME = "qa"
    PRIORITY = 7
    DESCRIPTION = "Quality assurance review"
    TRIGGERS = ("code-change", "feature", "bug-fix", "ui-change")
    BLOCKING_SIGNALS = {
        "known-defect": "Change ships with a known unresolved defect",
    }
    REQUIREMENTS = (
        Requirement(
            "integration-tests",
            "add integration test",
            when=frozenset({"feature", "ui-change"}),
        ),
        Requirement("qa-signoff", "Obtain QA sign-off"),
    )


class ReleaseGatePolicy(ChecklistPolicy):
    """Final release approval."""

    NAME = "release-gate"
    PRIORITY = 8
    DESCRIPTION = "Final gate before a release ships"
    TRIGGERS = ("release", "production-deploy")
    BLOCKING_SIGNALS = {
        "release-freeze": "A release freeze is in effect",
    }
    REQUIREMENTS = (
        Requirement("changelog-updated", "Update the changelog"),
        Requirement("release-approved", "Obtain release approval"),
    )
    MISSING_EVIDENCE_STATUS = VerdictStatus.BLOCK


BUILTIN_POLICY_CLASSES: tuple[type[ChecklistPolicy], ...] = (
    GuardrailsPolicy,
    MigrationPolicy,
    RegressionPolicy,
    ProductionReadinessPolicy,
    CanaryFlagPolicy,
    CicdGatePolicy,
    QaPolicy,
    ReleaseGatePolicy,
)


def default_policies() -> list[Policy]:
    """
    Create fresh instances of the eight built-in meta-skills.

    Returns:
        Policies in canonical priority order.
    """
    return [cls() for cls in BUILTIN_POLICY_CLASSES]


def describe_policy(policy: Policy) -> dict[str, Any]:
    """Summarize a policy for listings."""
    info: dict[str, Any] = {
        "priority": policy.priority,
        "name": policy.name,
        "mandatory": policy.mandatory,
        "description": policy.description,
    }
    if isinstance(policy, ChecklistPolicy):
        info["triggers"] = sorted(policy.triggers)
        info["blocking_signals"] = sorted(policy.blocking_signals)
        info["required_evidence"] = [r.evidence for r in policy.requirements]
        info["missing_evidence_status"] = policy.missing_evidence_status.value
    return info
