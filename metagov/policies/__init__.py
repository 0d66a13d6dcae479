"""
Policies for MetaGov.

This module provides the Policy interface, the eight built-in
meta-skill policies and the YAML policy pack loader.
"""

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
from metagov.policies.loader import LoadError, LoadResult, PolicyPackLoader

__all__ = [
    "BUILTIN_POLICY_CLASSES",
    "CallablePolicy",
    "CanaryFlagPolicy",
    "ChecklistPolicy",
    "CicdGatePolicy",
    "GuardrailsPolicy",
    "LoadError",
    "LoadResult",
    "MigrationPolicy",
    "Policy",
    "PolicyPackLoader",
    "ProductionReadinessPolicy",
    "QaPolicy",
    "RegressionPolicy",
    "ReleaseGatePolicy",
    "Requirement",
    "default_policies",
    "describe_policy",
]
