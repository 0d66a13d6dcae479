"""
Exception classes for MetaGov.

This module defines the exception hierarchy used throughout MetaGov.
All custom exceptions inherit from MetaGovError to allow for easy
catching of any MetaGov-specific exception.

Registry errors are raised while the policy registry is populated at
startup and are fatal: a process must not start with a malformed
registry. Per-request faults are converted to in-model states (UNKNOWN
verdicts, BLOCKED decisions) and only audit storage failures cross the
public boundary as exceptions.
"""

from typing import Any


class MetaGovError(Exception):
    """
    Base exception for all MetaGov errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(MetaGovError):
    """
    Raised when there is an error in MetaGov configuration.

    Examples:
        - Missing configuration file
        - Invalid YAML syntax in configuration
        - Configuration value out of allowed range
        - Unparsable environment variable override
    """

    pass


class ValidationError(MetaGovError):
    """
    Raised when input data fails validation.

    Examples:
        - Change request body is not a JSON object
        - Tags are not a list of strings
        - Timestamp is not RFC 3339
    """

    pass


class PolicyError(MetaGovError):
    """
    Raised when a policy pack cannot be loaded.

    Examples:
        - Invalid YAML syntax in a policy pack
        - Unknown verdict status for missing evidence
        - Non-integer priority
    """

    pass


class RegistryError(MetaGovError):
    """
    Raised when the policy registry is used incorrectly.

    Registry errors are configuration faults. They are raised while the
    registry is being populated and must abort startup.
    """

    pass


class DuplicatePriorityError(RegistryError):
    """Raised when a policy is registered with a priority already in use."""

    pass


class DuplicateNameError(RegistryError):
    """Raised when a policy is registered under a name already in use."""

    pass


class NotFoundError(RegistryError):
    """Raised when a policy name is looked up but was never registered."""

    pass


class UnclassifiableContextError(MetaGovError):
    """
    Raised when no registered policy applies to a change request.

    The governance facade converts this into a BLOCKED decision; it never
    reaches callers of ``decide``.
    """

    pass


class EvaluationError(MetaGovError):
    """
    Raised when the evaluation coordinator itself cannot run.

    Individual policy faults never raise this; they become UNKNOWN
    verdicts. This covers coordinator misuse such as dispatching after
    the worker pool was shut down.
    """

    pass


class StorageError(MetaGovError):
    """
    Raised when there is an error in the storage layer.

    Examples:
        - Database connection failed
        - Audit sink could not be opened
        - Write to the audit store failed
    """

    pass


class AuditFailureError(MetaGovError):
    """
    Raised when a decision could not be durably recorded.

    The facade never returns a decision it failed to append to the audit
    log. Callers receive this error instead, with the undelivered
    decision attached for diagnostics.

    Attributes:
        decision: The decision that could not be recorded, if one was built.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        decision: Any = None,
    ) -> None:
        super().__init__(message, details)
        self.decision = decision
