"""
Data models for MetaGov.

This module exports all data model classes used throughout MetaGov.
Models are implemented as frozen dataclasses with full type annotations.
"""

from metagov.models.audit import AuditEntry, SkippedPolicy
from metagov.models.decision import Decision, DecisionStatus
from metagov.models.request import ChangeRequest, normalize_tags
from metagov.models.verdict import Verdict, VerdictStatus

__all__ = [
    # Request
    "ChangeRequest",
    "normalize_tags",
    # Verdict
    "Verdict",
    "VerdictStatus",
    # Decision
    "Decision",
    "DecisionStatus",
    # Audit
    "AuditEntry",
    "SkippedPolicy",
]
