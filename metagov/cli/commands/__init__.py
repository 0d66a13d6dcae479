"""
CLI command modules for MetaGov.

Each module registers one top-level command with the parser.

Modules:
    decide: Decide a change request
    policy: List and validate policies
    audit: Query and export the audit log
    config: Configuration management
    serve: Run the HTTP API server
"""

from metagov.cli.commands import audit, config, decide, policy, serve

__all__ = ["decide", "policy", "audit", "config", "serve"]
