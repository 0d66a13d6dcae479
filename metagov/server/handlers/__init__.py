"""
API handlers for the MetaGov server.

Modules:
    health_handlers: Health check
    decide_handlers: Decision endpoint
    policy_handlers: Policy listing
    audit_handlers: Audit log queries
"""

from metagov.server.handlers import (
    audit_handlers,
    decide_handlers,
    health_handlers,
    policy_handlers,
)

__all__ = [
    "health_handlers",
    "decide_handlers",
    "policy_handlers",
    "audit_handlers",
]
