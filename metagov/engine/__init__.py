"""
Decision engine for MetaGov.

This module wires the policy registry, context classifier, evaluation
coordinator and conflict resolver together behind the GovernanceFacade.
"""

from metagov.engine.classifier import Classification, ContextClassifier
from metagov.engine.coordinator import EvaluationCoordinator, ResultSlot
from metagov.engine.governance import (
    CLASSIFIER_COMPONENT,
    FACADE_COMPONENT,
    GovernanceFacade,
)
from metagov.engine.registry import PolicyRegistry
from metagov.engine.resolver import ConflictResolver

__all__ = [
    "CLASSIFIER_COMPONENT",
    "Classification",
    "ConflictResolver",
    "ContextClassifier",
    "EvaluationCoordinator",
    "FACADE_COMPONENT",
    "GovernanceFacade",
    "PolicyRegistry",
    "ResultSlot",
]
