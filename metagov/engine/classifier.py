"""
Context classifier for MetaGov.

The classifier decides which registered policies must run for a change
request, based only on the request's tags. Mandatory policies, such as
the guardrails, are never skipped.
"""

import logging
from dataclasses import dataclass, field

from metagov.engine.registry import PolicyRegistry
from metagov.exceptions import UnclassifiableContextError
from metagov.models.audit import SkippedPolicy
from metagov.models.request import ChangeRequest
from metagov.policies.base import Policy

logger = logging.getLogger("metagov.engine.classifier")


@dataclass
class Classification:
    """
    Result of classifying a change request.

    Attributes:
        applicable: Policies that must run, in priority order.
        skipped: Policies that do not apply, with reasons.
    """

    applicable: list[Policy] = field(default_factory=list)
    skipped: list[SkippedPolicy] = field(default_factory=list)

    @property
    def applicable_names(self) -> list[str]:
        """Names of the applicable policies."""
        return [p.name for p in self.applicable]


class ContextClassifier:
    """
    Maps a change request to the set of applicable policies.

    Example:
        Classifying a request::

            classifier = ContextClassifier()
            policies = classifier.applicable_policies(request, registry)
    """

    def classify(self, request: ChangeRequest, registry: PolicyRegistry) -> Classification:
        """
        Split the registry into applicable and skipped policies.

        Args:
            request: The change request.
            registry: Registry to classify against.

        Returns:
            Classification in priority order.

        Raises:
            UnclassifiableContextError: If no policy applies.
        """
        result = Classification()
        tags = request.tags

        for policy in registry.all():
            if policy.mandatory:
                result.applicable.append(policy)
                continue

            try:
                applies = bool(policy.applies_to(tags))
            except Exception as e:
                # A broken predicate runs the policy rather than skipping it
                logger.warning(
                    f"Applicability check of {policy.name} failed for request "
                    f"{request.id}, including it: {e}"
                )
                applies = True

            if applies:
                result.applicable.append(policy)
            else:
                result.skipped.append(
                    SkippedPolicy(
                        policy_name=policy.name,
                        priority=policy.priority,
                        reason=f"not applicable to tags {sorted(tags)}",
                    )
                )

        if not result.applicable:
            raise UnclassifiableContextError(
                "context could not be classified",
                details={"request_id": request.id, "tags": sorted(tags)},
            )

        logger.debug(
            f"Request {request.id} classified: applicable={result.applicable_names} "
            f"skipped={[s.policy_name for s in result.skipped]}"
        )
        return result

    def applicable_policies(
        self,
        request: ChangeRequest,
        registry: PolicyRegistry,
    ) -> list[Policy]:
        """
        Return the policies that must run for a request, in priority order.

        Raises:
            UnclassifiableContextError: If no policy applies.
        """
        return self.classify(request, registry).applicable
