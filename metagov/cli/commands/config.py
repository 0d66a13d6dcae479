"""
Configuration commands for the MetaGov CLI.

This module implements the 'metagov config' commands.

Usage:
    metagov config show [--section SECTION]
    metagov config validate [PATH]
"""

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from metagov.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the config command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="View and validate MetaGov configuration.",
    )

    config_subparsers = parser.add_subparsers(
        title="config commands",
        dest="config_command",
        metavar="<subcommand>",
    )

    show_parser = config_subparsers.add_parser(
        "show",
        help="Display current configuration",
        description="Display the effective configuration after all overrides.",
    )
    show_parser.add_argument(
        "--section",
        "-s",
        metavar="SECTION",
        help="Show only one section (governance, audit, logging, server)",
    )
    show_parser.set_defaults(func=run_config_show)

    validate_parser = config_subparsers.add_parser(
        "validate",
        help="Validate configuration file",
        description="Validate a configuration file for errors.",
    )
    validate_parser.add_argument(
        "path",
        nargs="?",
        metavar="PATH",
        help="Path to configuration file (uses --config if not specified)",
    )
    validate_parser.set_defaults(func=run_config_validate)

    parser.set_defaults(func=lambda args, ctx: run_config_help(parser, args, ctx))


def run_config_help(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    ctx: "CLIContext",
) -> int:
    """Show help when no subcommand is specified."""
    parser.print_help()
    return 0


def run_config_show(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the config show command."""
    from metagov.cli.formatters import format_output
    from metagov.cli.main import EXIT_ERROR, EXIT_SUCCESS

    config_dict = ctx.config.to_dict()

    if args.section:
        section = args.section.lower()
        if section not in config_dict:
            ctx.print_error(f"Unknown section: {section}")
            ctx.print_error(f"Available sections: {', '.join(config_dict.keys())}")
            return EXIT_ERROR
        config_dict = {section: config_dict[section]}

    ctx.print(format_output(config_dict, ctx.output_format, title="Configuration"))
    return EXIT_SUCCESS


def run_config_validate(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the config validate command."""
    from metagov.cli.main import EXIT_SUCCESS, EXIT_VALIDATION_ERROR
    from metagov.config.loader import ConfigLoader
    from metagov.exceptions import ConfigurationError

    config_path = args.path or ctx.config_path
    if config_path is None:
        ctx.print("No configuration file specified.")
        ctx.print("Use 'metagov config validate PATH' or '--config PATH'")
        return EXIT_VALIDATION_ERROR

    path = Path(config_path)
    if not path.exists():
        ctx.print_error(f"Configuration file not found: {path}")
        return EXIT_VALIDATION_ERROR

    ctx.print(f"Validating: {path}")

    try:
        config = ConfigLoader().load(str(path))
    except ConfigurationError as e:
        ctx.print_error(f"Configuration validation failed: {e.message}")
        for error in e.details.get("errors", []):
            ctx.print_error(f"  - {error}")
        return EXIT_VALIDATION_ERROR

    ctx.print("")
    ctx.print("Configuration is valid.")
    ctx.print("")
    ctx.print(f"  Environment: {config.environment}")
    ctx.print(f"  Policy timeout: {config.governance.policy_timeout_ms:g} ms")
    ctx.print(f"  Worker pool: {config.governance.worker_pool_size}")
    ctx.print(f"  Audit store: {config.audit.backend} ({config.audit.store_path})")
    ctx.print(f"  Policies: {config.policies_path or 'built-in meta-skills'}")
    return EXIT_SUCCESS
