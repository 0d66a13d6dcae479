"""
Policy interface for MetaGov.

Every evaluator registered with the engine implements the Policy
contract: a unique name, an integer priority (lower value means higher
precedence), an applicability predicate over request tags, and an
``evaluate`` method that returns a Verdict.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from metagov.models.request import ChangeRequest
from metagov.models.verdict import Verdict, VerdictStatus


class Policy(ABC):
    """
    Base class for governance policies.

    Policies are evaluated as siblings: they may run concurrently, must
    not share mutable state and must not depend on each other's output.

    Attributes:
        name: Unique policy name.
        priority: Precedence; lower numbers dominate in conflict
            resolution. Unique within a registry.
        mandatory: If True the policy runs for every request and its
            applicability predicate is never consulted.
        description: Optional human-readable description.

    Example:
        Implementing a policy::

            class NoFridayDeploys(Policy):
                def __init__(self) -> None:
                    super().__init__("no-friday-deploys", priority=20)

                def applies_to(self, tags):
                    return "production-deploy" in tags

                def evaluate(self, request):
                    if request.timestamp.weekday() == 4:
                        return self.block("No production deploys on Friday")
                    return self.approve("Not a Friday")
    """

    def __init__(
        self,
        name: str,
        priority: int,
        mandatory: bool = False,
        description: str = "",
    ) -> None:
        if not name:
            raise ValueError("policy name is required")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError(f"priority must be an integer, got {priority!r}")
        self.name = name
        self.priority = priority
        self.mandatory = mandatory
        self.description = description

    def applies_to(self, tags: frozenset[str]) -> bool:
        """
        Decide whether this policy must run for a request with these tags.

        Must be a pure function of ``tags``. The default applies to
        every request.
        """
        return True

    @abstractmethod
    def evaluate(self, request: ChangeRequest) -> Verdict:
        """
        Evaluate a change request.

        Args:
            request: The change request to judge.

        Returns:
            This policy's verdict. Raising is allowed; the coordinator
            records an UNKNOWN verdict for the fault.
        """
        ...

    def approve(self, rationale: str = "") -> Verdict:
        """Build an APPROVE verdict for this policy."""
        return Verdict(
            policy_name=self.name,
            status=VerdictStatus.APPROVE,
            rationale=rationale,
            priority=self.priority,
        )

    def block(self, rationale: str) -> Verdict:
        """Build a BLOCK verdict for this policy."""
        return Verdict(
            policy_name=self.name,
            status=VerdictStatus.BLOCK,
            rationale=rationale,
            priority=self.priority,
        )

    def conditional(self, rationale: str, conditions: Iterable[str]) -> Verdict:
        """Build a CONDITIONAL verdict for this policy."""
        return Verdict(
            policy_name=self.name,
            status=VerdictStatus.CONDITIONAL,
            rationale=rationale,
            conditions=tuple(conditions),
            priority=self.priority,
        )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}(name={self.name!r}, "
            f"priority={self.priority}, mandatory={self.mandatory})"
        )


class CallablePolicy(Policy):
    """
    Policy built from plain callables.

    Useful for wiring external evaluators without subclassing.

    Example:
        Wrapping a function::

            policy = CallablePolicy(
                "license-check",
                priority=30,
                evaluator=lambda req: Verdict("license-check", VerdictStatus.APPROVE),
                predicate=lambda tags: "dependency-update" in tags,
            )
    """

    def __init__(
        self,
        name: str,
        priority: int,
        evaluator: Callable[[ChangeRequest], Verdict],
        predicate: Callable[[frozenset[str]], bool] | None = None,
        mandatory: bool = False,
        description: str = "",
    ) -> None:
        super().__init__(name, priority, mandatory=mandatory, description=description)
        self._evaluator = evaluator
        self._predicate = predicate

    def applies_to(self, tags: frozenset[str]) -> bool:
        """Delegate to the supplied predicate, if any."""
        if self._predicate is None:
            return True
        return bool(self._predicate(tags))

    def evaluate(self, request: ChangeRequest) -> Verdict:
        """Delegate to the supplied evaluator."""
        return self._evaluator(request)
