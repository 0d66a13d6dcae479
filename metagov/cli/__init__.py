"""
Command-line interface for MetaGov.

This module provides the ``metagov`` command for deciding change
requests, inspecting policies and querying the audit log.
"""

from metagov.cli.main import CLIContext, create_parser, main

__all__ = ["CLIContext", "create_parser", "main"]
