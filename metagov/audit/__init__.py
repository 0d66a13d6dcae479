"""
Decision audit log for MetaGov.

This module provides the AuditLog, its storage sinks, and a factory that
builds the configured log.
"""

from typing import Any

from metagov.audit.log import AuditEntries, AuditLog
from metagov.audit.sinks import AuditSink, JsonLinesSink, MemorySink, SQLiteSink
from metagov.exceptions import ConfigurationError
from metagov.storage.database import Database

BACKENDS = ("sqlite", "jsonl", "memory")


def create_audit_log(config: Any) -> AuditLog:
    """
    Build an audit log from an AuditConfig section.

    Args:
        config: Audit configuration with ``backend``, ``store_path`` and
            ``timeout_seconds``.

    Returns:
        An unopened AuditLog.

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    backend = config.backend
    if backend == "sqlite":
        sink: AuditSink = SQLiteSink(Database(config.store_path, timeout=config.timeout_seconds))
    elif backend == "jsonl":
        sink = JsonLinesSink(config.store_path)
    elif backend == "memory":
        sink = MemorySink()
    else:
        raise ConfigurationError(
            f"Unknown audit backend '{backend}'",
            details={"valid": list(BACKENDS)},
        )
    return AuditLog(sink)


__all__ = [
    "AuditEntries",
    "AuditLog",
    "AuditSink",
    "BACKENDS",
    "JsonLinesSink",
    "MemorySink",
    "SQLiteSink",
    "create_audit_log",
]
