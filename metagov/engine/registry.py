"""
Policy registry for MetaGov.

The registry holds every policy by name with a unique priority. It is
populated once at startup and sealed before the first decision, after
which it is read-only and safe to share between threads without locks.
"""

import logging
import threading
from typing import Iterable, Iterator

from metagov.exceptions import (
    DuplicateNameError,
    DuplicatePriorityError,
    NotFoundError,
    RegistryError,
)
from metagov.policies.base import Policy

logger = logging.getLogger("metagov.engine.registry")


class PolicyRegistry:
    """
    Registry of governance policies keyed by name.

    Example:
        Populating a registry::

            registry = PolicyRegistry()
            registry.register(GuardrailsPolicy())
            registry.register(ReleaseGatePolicy())
            registry.seal()

            for policy in registry.all():
                print(policy.priority, policy.name)
    """

    def __init__(self, policies: Iterable[Policy] | None = None) -> None:
        """
        Initialize the registry.

        Args:
            policies: Optional policies to register immediately.
        """
        self._policies: dict[str, Policy] = {}
        self._by_priority: dict[int, Policy] = {}
        self._ordered: tuple[Policy, ...] = ()
        self._sealed = False
        self._lock = threading.Lock()

        if policies is not None:
            self.register_all(policies)

    @classmethod
    def with_defaults(cls) -> "PolicyRegistry":
        """Create a registry holding the eight built-in meta-skills."""
        from metagov.policies.builtin import default_policies

        return cls(default_policies())

    def register(self, policy: Policy) -> None:
        """
        Register a policy.

        Args:
            policy: The policy to add.

        Raises:
            DuplicateNameError: If a policy with the same name exists.
            DuplicatePriorityError: If another policy has the same priority.
            RegistryError: If the registry has been sealed.
        """
        with self._lock:
            if self._sealed:
                raise RegistryError(
                    f"Cannot register '{policy.name}': registry is sealed",
                    details={"policy": policy.name},
                )
            if policy.name in self._policies:
                raise DuplicateNameError(
                    f"Policy '{policy.name}' is already registered",
                    details={"policy": policy.name},
                )
            existing = self._by_priority.get(policy.priority)
            if existing is not None:
                raise DuplicatePriorityError(
                    f"Priority {policy.priority} of '{policy.name}' is already "
                    f"used by '{existing.name}'",
                    details={
                        "policy": policy.name,
                        "priority": policy.priority,
                        "existing": existing.name,
                    },
                )

            self._policies[policy.name] = policy
            self._by_priority[policy.priority] = policy
            self._ordered = tuple(
                self._by_priority[p] for p in sorted(self._by_priority)
            )

        logger.debug(f"Registered policy {policy.name} (priority {policy.priority})")

    def register_all(self, policies: Iterable[Policy]) -> None:
        """Register several policies in order."""
        for policy in policies:
            self.register(policy)

    def lookup(self, name: str) -> Policy:
        """
        Look up a policy by name.

        Raises:
            NotFoundError: If no policy has that name.
        """
        try:
            return self._policies[name]
        except KeyError:
            raise NotFoundError(
                f"Policy '{name}' is not registered",
                details={"policy": name},
            ) from None

    def all(self) -> tuple[Policy, ...]:
        """Return every policy in ascending priority order."""
        return self._ordered

    def names(self) -> list[str]:
        """Return policy names in priority order."""
        return [p.name for p in self._ordered]

    def seal(self) -> None:
        """Make the registry read-only."""
        with self._lock:
            if not self._sealed:
                self._sealed = True
                logger.info(f"Policy registry sealed with {len(self._ordered)} policies")

    @property
    def sealed(self) -> bool:
        """Whether the registry has been sealed."""
        return self._sealed

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def __iter__(self) -> Iterator[Policy]:
        return iter(self._ordered)

    def __repr__(self) -> str:
        return f"PolicyRegistry(policies={self.names()!r}, sealed={self._sealed})"
