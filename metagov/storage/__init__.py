"""
Storage layer for MetaGov.

This module provides database connectivity, schema management, and
repository classes for persisting the decision audit log.
"""

from metagov.storage.database import Database
from metagov.storage.repositories import AuditRepository

__all__ = [
    "AuditRepository",
    "Database",
]
