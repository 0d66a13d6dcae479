"""
Test utilities and helpers for MetaGov tests.

This module provides:
- Builders for change requests and fixed-verdict policies
- Policies that misbehave in controlled ways
- Assertion helpers for decisions
"""

import threading
import time

from metagov.models.decision import Decision, DecisionStatus
from metagov.models.request import ChangeRequest
from metagov.models.verdict import Verdict, VerdictStatus
from metagov.policies.base import CallablePolicy, Policy


def make_request(*tags: str, description: str = "test change", request_id: str = "") -> ChangeRequest:
    """Build a change request with the given tags."""
    return ChangeRequest(id=request_id, description=description, tags=frozenset(tags))


def make_verdict(
    name: str,
    status: VerdictStatus,
    priority: int | None = None,
    conditions: tuple[str, ...] = (),
    rationale: str = "",
) -> Verdict:
    """Build a verdict as the coordinator would return it."""
    return Verdict(
        policy_name=name,
        status=status,
        rationale=rationale or f"{name} says {status.value}",
        conditions=conditions,
        priority=priority,
    )


def fixed_policy(
    name: str,
    priority: int,
    status: VerdictStatus,
    rationale: str = "",
    conditions: tuple[str, ...] = (),
    mandatory: bool = False,
    delay: float = 0.0,
) -> Policy:
    """Build a policy that always returns the same verdict."""

    def evaluate(request: ChangeRequest) -> Verdict:
        if delay:
            time.sleep(delay)
        return Verdict(
            policy_name=name,
            status=status,
            rationale=rationale or f"{name} says {status.value}",
            conditions=conditions,
        )

    return CallablePolicy(name, priority, evaluator=evaluate, mandatory=mandatory)


class BlockingPolicy(Policy):
    """Policy that waits on an event, used to force timeouts."""

    def __init__(self, name: str, priority: int, release: threading.Event) -> None:
        super().__init__(name, priority)
        self.release = release
        self.finished = threading.Event()

    def evaluate(self, request: ChangeRequest) -> Verdict:
        try:
            self.release.wait(timeout=5.0)
            return self.approve("released")
        finally:
            self.finished.set()


class RaisingPolicy(Policy):
    """Policy whose evaluation always raises."""

    def __init__(self, name: str, priority: int, error: Exception | None = None) -> None:
        super().__init__(name, priority)
        self.error = error or RuntimeError("boom")

    def evaluate(self, request: ChangeRequest) -> Verdict:
        raise self.error


def assert_decision(
    decision: Decision,
    status: DecisionStatus,
    dominant: str,
) -> None:
    """Assert the outcome and dominant policy of a decision."""
    assert decision.final_status == status, (
        f"expected {status.value}, got {decision.final_status.value} "
        f"(dominant {decision.dominant_policy}: {decision.reason})"
    )
    assert decision.dominant_policy == dominant
