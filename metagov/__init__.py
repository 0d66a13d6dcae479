"""
MetaGov: governance decisions for skill corpus changes.

MetaGov decides whether a proposed change to a skill corpus may
proceed. Each change request is classified by its tags, evaluated in
parallel by the applicable meta-skill policies, resolved into one
APPROVED, BLOCKED or CONDITIONAL decision by fixed precedence, and
appended to a durable audit log.

Key Features:
    - Eight built-in meta-skills with canonical precedence
    - Custom policies in Python or as YAML policy packs
    - Fail-closed evaluation: timeouts and faults never approve
    - Append-only audit log on SQLite, JSON Lines or memory

Example:
    Deciding a change request::

        from metagov import ChangeRequest, GovernanceFacade
        from metagov.config import get_test_config

        with GovernanceFacade.from_config(get_test_config()) as facade:
            decision = facade.decide(
                ChangeRequest(tags=frozenset({"database-change"}))
            )
            print(decision.final_status, decision.reason)

Public API:
    Version:
        __version__: The package version string

    Exceptions:
        MetaGovError: Base exception for all MetaGov errors
        ConfigurationError: Configuration-related errors
        ValidationError: Data validation errors
        PolicyError: Policy definition errors
        RegistryError: Policy registry errors
        StorageError: Storage layer errors
        AuditFailureError: A decision could not be recorded

    Engine:
        GovernanceFacade: The decide() entry point
        ChangeRequest, Decision, DecisionStatus, Verdict, VerdictStatus
"""

from metagov.engine.governance import GovernanceFacade
from metagov.exceptions import (
    AuditFailureError,
    ConfigurationError,
    MetaGovError,
    PolicyError,
    RegistryError,
    StorageError,
    ValidationError,
)
from metagov.models import (
    ChangeRequest,
    Decision,
    DecisionStatus,
    Verdict,
    VerdictStatus,
)
from metagov.version import __version__

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "MetaGovError",
    "ConfigurationError",
    "ValidationError",
    "PolicyError",
    "RegistryError",
    "StorageError",
    "AuditFailureError",
    # Engine
    "GovernanceFacade",
    "ChangeRequest",
    "Decision",
    "DecisionStatus",
    "Verdict",
    "VerdictStatus",
]
