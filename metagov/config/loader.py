"""
Configuration loader for MetaGov.

This module provides the ConfigLoader class for loading configuration
from YAML files with environment variable overrides.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from metagov.config.defaults import (
    get_default_config,
    get_development_config,
    get_production_config,
    get_test_config,
)
from metagov.config.schema import (
    AuditConfig,
    GovernanceConfig,
    LoggingConfig,
    MetaGovConfig,
    ServerConfig,
)
from metagov.exceptions import ConfigurationError

# Flat camelCase keys accepted at the top level of a configuration file
TOP_LEVEL_ALIASES = {
    "policyTimeoutMs": ("governance", "policy_timeout_ms"),
    "workerPoolSize": ("governance", "worker_pool_size"),
    "auditStorePath": ("audit", "store_path"),
}


class ConfigLoader:
    """
    Loads and validates MetaGov configuration.

    Configuration sources are applied in order, with later sources
    overriding earlier ones:

    1. Default values (or an environment profile)
    2. A YAML configuration file
    3. Environment variables (METAGOV_ prefix)

    Example:
        Loading configuration::

            loader = ConfigLoader()
            config = loader.load("config/metagov.yaml")
            config = loader.load("config/metagov.yaml", environment="production")

    File Format:
        Sections mirror the dataclass schema::

            environment: production
            governance:
              policy_timeout_ms: 2000
              worker_pool_size: 8
            audit:
              backend: sqlite
              store_path: /var/lib/metagov/audit.db
            logging:
              level: INFO
            policies_path: policies/governance.yaml
    """

    ENV_PREFIX = "METAGOV_"

    def __init__(self) -> None:
        """Initialize the configuration loader."""
        self._config: MetaGovConfig | None = None

    def load(
        self,
        config_path: str | Path | None = None,
        environment: str | None = None,
    ) -> MetaGovConfig:
        """
        Load configuration from file and environment.

        Args:
            config_path: Path to a YAML configuration file. If None,
                only defaults and environment variables are used.
            environment: Environment profile to use. Overrides any
                environment setting in the config file.

        Returns:
            A validated MetaGovConfig object.

        Raises:
            ConfigurationError: If configuration is invalid or file not found.
        """
        try:
            if environment:
                config = self._get_environment_defaults(environment)
            else:
                config = get_default_config()
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid environment: {e}",
                details={"environment": environment},
            ) from e

        if config_path:
            file_config = self._load_yaml(config_path)
            config = self._merge_config(config, file_config)

        config = self._apply_env_overrides(config)

        if environment:
            config.environment = environment

        self._validate(config)

        self._config = config
        return config

    def load_dict(self, data: dict[str, Any], environment: str | None = None) -> MetaGovConfig:
        """
        Load configuration from an already parsed mapping.

        Environment variable overrides are not applied.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        config = self._get_environment_defaults(environment) if environment else get_default_config()
        config = self._merge_config(config, data)
        self._validate(config)
        self._config = config
        return config

    def _get_environment_defaults(self, environment: str) -> MetaGovConfig:
        """Get default configuration for an environment."""
        env_lower = environment.lower()
        if env_lower == "production":
            return get_production_config()
        elif env_lower == "development":
            return get_development_config()
        elif env_lower == "test":
            return get_test_config()
        else:
            config = get_default_config()
            config.environment = environment
            return config

    def _load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load configuration from a YAML file.

        Raises:
            ConfigurationError: If file not found or invalid YAML.
        """
        path = Path(path)

        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                details={"path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                details={"path": str(path)},
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration file: {e}",
                details={"path": str(path)},
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a YAML mapping",
                details={"path": str(path)},
            )
        return data

    def _merge_config(
        self,
        base: MetaGovConfig,
        override: dict[str, Any],
    ) -> MetaGovConfig:
        """
        Merge file configuration into base configuration.

        Raises:
            ConfigurationError: If a section holds an invalid value.
        """
        if not override:
            return base

        override = self._expand_aliases(override)

        if "environment" in override:
            base.environment = str(override["environment"])

        if "policies_path" in override:
            base.policies_path = str(override["policies_path"] or "")

        if "metadata" in override and isinstance(override["metadata"], dict):
            base.metadata.update(override["metadata"])

        sections = {
            "governance": self._merge_governance,
            "audit": self._merge_audit,
            "logging": self._merge_logging,
            "server": self._merge_server,
        }
        for name, merge in sections.items():
            if name not in override:
                continue
            section = override[name] or {}
            if not isinstance(section, dict):
                raise ConfigurationError(
                    f"Configuration section '{name}' must be a mapping",
                    details={"section": name},
                )
            try:
                setattr(base, name, merge(getattr(base, name), section))
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid {name} configuration: {e}",
                    details={"section": name},
                ) from e

        return base

    def _expand_aliases(self, override: dict[str, Any]) -> dict[str, Any]:
        """Move flat camelCase keys into their sections."""
        result = dict(override)
        for alias, (section, key) in TOP_LEVEL_ALIASES.items():
            if alias in result:
                merged = dict(result.get(section) or {})
                merged.setdefault(key, result.pop(alias))
                result[section] = merged
        return result

    def _merge_governance(
        self,
        base: GovernanceConfig,
        override: dict[str, Any],
    ) -> GovernanceConfig:
        """Merge governance configuration."""
        return GovernanceConfig(
            policy_timeout_ms=float(override.get("policy_timeout_ms", base.policy_timeout_ms)),
            worker_pool_size=int(override.get("worker_pool_size", base.worker_pool_size)),
        )

    def _merge_audit(
        self,
        base: AuditConfig,
        override: dict[str, Any],
    ) -> AuditConfig:
        """Merge audit configuration."""
        return AuditConfig(
            store_path=str(override.get("store_path", base.store_path)),
            backend=str(override.get("backend", base.backend)),
            timeout_seconds=float(override.get("timeout_seconds", base.timeout_seconds)),
        )

    def _merge_logging(
        self,
        base: LoggingConfig,
        override: dict[str, Any],
    ) -> LoggingConfig:
        """Merge logging configuration."""
        return LoggingConfig(
            level=override.get("level", base.level),
            format=override.get("format", base.format),
            output_path=override.get("output_path", base.output_path) or "",
            json_format=bool(override.get("json_format", base.json_format)),
        )

    def _merge_server(
        self,
        base: ServerConfig,
        override: dict[str, Any],
    ) -> ServerConfig:
        """Merge server configuration."""
        return ServerConfig(
            host=override.get("host", base.host),
            port=int(override.get("port", base.port)),
        )

    def _apply_env_overrides(self, config: MetaGovConfig) -> MetaGovConfig:
        """
        Apply environment variable overrides to configuration.

        Environment variables use the format METAGOV_SECTION_OPTION=value,
        for example:

        - METAGOV_GOVERNANCE_POLICY_TIMEOUT_MS=2000
        - METAGOV_AUDIT_STORE_PATH=/var/lib/metagov/audit.db
        - METAGOV_LOGGING_LEVEL=DEBUG
        """
        env_mapping = {
            # Top-level
            "METAGOV_ENVIRONMENT": ("environment", str),
            "METAGOV_POLICIES_PATH": ("policies_path", str),
            # Governance
            "METAGOV_GOVERNANCE_POLICY_TIMEOUT_MS": ("governance.policy_timeout_ms", float),
            "METAGOV_GOVERNANCE_WORKER_POOL_SIZE": ("governance.worker_pool_size", int),
            # Audit
            "METAGOV_AUDIT_STORE_PATH": ("audit.store_path", str),
            "METAGOV_AUDIT_BACKEND": ("audit.backend", str),
            "METAGOV_AUDIT_TIMEOUT_SECONDS": ("audit.timeout_seconds", float),
            # Logging
            "METAGOV_LOGGING_LEVEL": ("logging.level", str),
            "METAGOV_LOGGING_OUTPUT_PATH": ("logging.output_path", str),
            "METAGOV_LOGGING_JSON_FORMAT": ("logging.json_format", self._parse_bool),
            # Server
            "METAGOV_SERVER_HOST": ("server.host", str),
            "METAGOV_SERVER_PORT": ("server.port", int),
        }

        for env_var, (path, converter) in env_mapping.items():
            value = os.environ.get(env_var)
            if value is not None:
                try:
                    converted = converter(value)
                    self._set_nested_attr(config, path, converted)
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(
                        f"Invalid value for {env_var}: {e}",
                        details={"env_var": env_var, "value": value},
                    ) from e

        return config

    def _set_nested_attr(self, obj: Any, path: str, value: Any) -> None:
        """Set a nested attribute using dot notation."""
        parts = path.split(".")
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)

    def _parse_bool(self, value: str) -> bool:
        """Parse a string to boolean."""
        if value.lower() in ("true", "1", "yes", "on"):
            return True
        elif value.lower() in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"Cannot parse '{value}' as boolean")

    def _validate(self, config: MetaGovConfig) -> None:
        """
        Validate the complete configuration.

        Sections are rebuilt so that their ``__post_init__`` checks run
        against values set directly by overrides.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        errors: list[str] = []

        try:
            MetaGovConfig(environment=config.environment)
        except ValueError as e:
            errors.append(f"environment: {e}")

        try:
            GovernanceConfig(
                policy_timeout_ms=config.governance.policy_timeout_ms,
                worker_pool_size=config.governance.worker_pool_size,
            )
        except ValueError as e:
            errors.append(f"governance: {e}")

        try:
            AuditConfig(
                store_path=config.audit.store_path,
                backend=config.audit.backend,
                timeout_seconds=config.audit.timeout_seconds,
            )
        except ValueError as e:
            errors.append(f"audit: {e}")

        try:
            LoggingConfig(
                level=config.logging.level,
                format=config.logging.format,
                output_path=config.logging.output_path,
                json_format=config.logging.json_format,
            )
        except ValueError as e:
            errors.append(f"logging: {e}")

        try:
            ServerConfig(host=config.server.host, port=config.server.port)
        except ValueError as e:
            errors.append(f"server: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                details={"errors": errors},
            )

        config.audit.backend = config.audit.backend.lower()

    @property
    def config(self) -> MetaGovConfig:
        """Get the currently loaded configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded. Call load() first.")
        return self._config


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> MetaGovConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to a YAML configuration file.
        environment: Environment profile to use.

    Returns:
        A validated MetaGovConfig object.
    """
    loader = ConfigLoader()
    return loader.load(config_path, environment)
