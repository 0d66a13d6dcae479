"""
Configuration schema definitions for MetaGov.

This module defines the configuration structure using dataclasses.
All configuration options are strongly typed with validation support.
"""

from dataclasses import dataclass, field
from typing import Any

VALID_ENVIRONMENTS = ["development", "staging", "production", "test"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_AUDIT_BACKENDS = ["sqlite", "jsonl", "memory"]


@dataclass
class GovernanceConfig:
    """
    Decision engine configuration options.

    Attributes:
        policy_timeout_ms: Deadline in milliseconds for each policy
            evaluation, measured from dispatch. A policy that misses it
            gets an UNKNOWN verdict, which blocks the change.
        worker_pool_size: Maximum number of policy evaluations running at
            once, shared across all concurrent decisions. Should be at
            least the number of registered policies.
    """

    policy_timeout_ms: float = 5000.0
    worker_pool_size: int = 8

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.policy_timeout_ms <= 0:
            raise ValueError("policy_timeout_ms must be positive")
        if self.worker_pool_size < 1:
            raise ValueError("worker_pool_size must be at least 1")


@dataclass
class AuditConfig:
    """
    Audit log configuration options.

    Attributes:
        store_path: Location of the audit store. A SQLite file for the
            sqlite backend (":memory:" for an in-memory database), a
            JSON-lines file for the jsonl backend.
        backend: Storage backend: sqlite, jsonl or memory.
        timeout_seconds: Busy timeout for the SQLite backend.
    """

    store_path: str = "metagov_audit.db"
    backend: str = "sqlite"
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        self.backend = self.backend.lower()
        if self.backend not in VALID_AUDIT_BACKENDS:
            raise ValueError(f"backend must be one of: {VALID_AUDIT_BACKENDS}")
        if self.backend != "memory" and not self.store_path:
            raise ValueError("store_path is required for the sqlite and jsonl backends")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


@dataclass
class LoggingConfig:
    """
    Logging configuration options.

    Attributes:
        level: Minimum log level to output. One of: DEBUG, INFO,
            WARNING, ERROR, CRITICAL.
        format: Log message format string. Supports standard Python
            logging format specifiers.
        output_path: Path to log file. If empty, logs are written to
            stderr only.
        json_format: Whether to output logs as JSON objects for
            structured logging systems.
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    output_path: str = ""
    json_format: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"level must be one of: {VALID_LOG_LEVELS}")


@dataclass
class ServerConfig:
    """
    HTTP server configuration options.

    Attributes:
        host: Host address to bind the server to.
        port: Port number to listen on.
    """

    host: str = "127.0.0.1"
    port: int = 8080

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")


@dataclass
class MetaGovConfig:
    """
    Root configuration object for MetaGov.

    Attributes:
        environment: The environment profile name (development, staging,
            production, test).
        governance: Decision engine options.
        audit: Audit log options.
        logging: Logging options.
        server: HTTP server options.
        policies_path: Optional path to a YAML policy pack. When empty
            the built-in meta-skills are used.
        metadata: Additional custom configuration as key-value pairs.
    """

    environment: str = "development"
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    policies_path: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.environment.lower() not in VALID_ENVIRONMENTS:
            raise ValueError(f"environment must be one of: {VALID_ENVIRONMENTS}")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "environment": self.environment,
            "governance": {
                "policy_timeout_ms": self.governance.policy_timeout_ms,
                "worker_pool_size": self.governance.worker_pool_size,
            },
            "audit": {
                "store_path": self.audit.store_path,
                "backend": self.audit.backend,
                "timeout_seconds": self.audit.timeout_seconds,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "output_path": self.logging.output_path,
                "json_format": self.logging.json_format,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
            },
            "policies_path": self.policies_path,
            "metadata": self.metadata,
        }
