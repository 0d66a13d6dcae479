"""
Default configuration values for MetaGov.

The defaults favor safety: a durable SQLite audit store, a worker pool
large enough to run all eight meta-skills at once, and a five second
policy deadline after which a policy counts as failed.

These defaults can be overridden by YAML configuration files and/or
environment variables.
"""

from metagov.config.schema import (
    AuditConfig,
    GovernanceConfig,
    LoggingConfig,
    MetaGovConfig,
    ServerConfig,
)

DEFAULT_GOVERNANCE = GovernanceConfig(
    policy_timeout_ms=5000.0,
    worker_pool_size=8,  # One worker per built-in meta-skill
)

DEFAULT_AUDIT = AuditConfig(
    store_path="metagov_audit.db",
    backend="sqlite",
    timeout_seconds=30.0,
)

DEFAULT_LOGGING = LoggingConfig(
    level="INFO",
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    output_path="",  # stderr only by default
    json_format=False,
)

DEFAULT_SERVER = ServerConfig(
    host="127.0.0.1",  # Localhost only by default
    port=8080,
)


def get_default_config() -> MetaGovConfig:
    """
    Get the default configuration.

    Returns:
        MetaGovConfig with default values.
    """
    return MetaGovConfig(
        environment="development",
        governance=GovernanceConfig(
            policy_timeout_ms=DEFAULT_GOVERNANCE.policy_timeout_ms,
            worker_pool_size=DEFAULT_GOVERNANCE.worker_pool_size,
        ),
        audit=AuditConfig(
            store_path=DEFAULT_AUDIT.store_path,
            backend=DEFAULT_AUDIT.backend,
            timeout_seconds=DEFAULT_AUDIT.timeout_seconds,
        ),
        logging=LoggingConfig(
            level=DEFAULT_LOGGING.level,
            format=DEFAULT_LOGGING.format,
            output_path=DEFAULT_LOGGING.output_path,
            json_format=DEFAULT_LOGGING.json_format,
        ),
        server=ServerConfig(
            host=DEFAULT_SERVER.host,
            port=DEFAULT_SERVER.port,
        ),
        policies_path="",
        metadata={},
    )


def get_production_config() -> MetaGovConfig:
    """
    Get a production configuration.

    Returns:
        MetaGovConfig with warning-level JSON logging.
    """
    config = get_default_config()
    config.environment = "production"
    config.logging.level = "WARNING"
    config.logging.json_format = True
    return config


def get_development_config() -> MetaGovConfig:
    """
    Get a development configuration.

    Returns:
        MetaGovConfig with verbose logging and a separate audit store.
    """
    config = get_default_config()
    config.environment = "development"
    config.logging.level = "DEBUG"
    config.audit.store_path = "metagov_audit_dev.db"
    return config


def get_test_config() -> MetaGovConfig:
    """
    Get a test configuration.

    Uses an in-memory audit store and a short policy deadline.

    Returns:
        MetaGovConfig with test settings.
    """
    config = get_default_config()
    config.environment = "test"
    config.audit.backend = "memory"
    config.audit.store_path = ":memory:"
    config.governance.policy_timeout_ms = 1000.0
    config.logging.level = "DEBUG"
    return config
