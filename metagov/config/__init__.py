"""
Configuration system for MetaGov.

This module provides configuration loading, validation, and logging
setup. Configuration can be loaded from YAML files with environment
variable overrides.
"""

from metagov.config.defaults import (
    get_default_config,
    get_development_config,
    get_production_config,
    get_test_config,
)
from metagov.config.loader import ConfigLoader, load_config
from metagov.config.log_setup import JsonFormatter, configure_logging
from metagov.config.schema import (
    AuditConfig,
    GovernanceConfig,
    LoggingConfig,
    MetaGovConfig,
    ServerConfig,
)

__all__ = [
    "AuditConfig",
    "ConfigLoader",
    "GovernanceConfig",
    "JsonFormatter",
    "LoggingConfig",
    "MetaGovConfig",
    "ServerConfig",
    "configure_logging",
    "get_default_config",
    "get_development_config",
    "get_production_config",
    "get_test_config",
    "load_config",
]
