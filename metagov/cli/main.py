"""
Main entry point for the MetaGov CLI.

This module provides the main command-line interface for MetaGov using
argparse for argument parsing. It supports global options, subcommands,
and exit codes that reflect governance outcomes.

Exit Codes:
    0: Success, or the change was APPROVED
    1: General error
    2: The change was BLOCKED, or validation error
    3: Configuration error
    4: The change was CONDITIONAL
    5: The decision could not be recorded in the audit log
"""

import argparse
import logging
import sys
from typing import Any

from metagov.exceptions import (
    AuditFailureError,
    ConfigurationError,
    MetaGovError,
    PolicyError,
    RegistryError,
    ValidationError,
)
from metagov.version import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_BLOCKED = 2
EXIT_CONFIG_ERROR = 3
EXIT_CONDITIONAL = 4
EXIT_AUDIT_FAILURE = 5

logger = logging.getLogger("metagov.cli")


class CLIContext:
    """
    Context object that holds CLI state and configuration.

    Expensive objects (configuration, the governance facade, the audit
    log) are created on first use and released by ``cleanup``.

    Attributes:
        config_path: Path to the configuration file.
        verbose: Enable verbose output.
        quiet: Suppress non-essential output.
        output_format: Output format (table, json, yaml).
    """

    def __init__(
        self,
        config_path: str | None = None,
        verbose: bool = False,
        quiet: bool = False,
        output_format: str = "table",
    ) -> None:
        self.config_path = config_path
        self.verbose = verbose
        self.quiet = quiet
        self.output_format = output_format
        self._config: Any = None
        self._facade: Any = None
        self._audit_log: Any = None

    @property
    def config(self) -> Any:
        """
        Load and return configuration.

        Raises:
            ConfigurationError: If configuration cannot be loaded.
        """
        if self._config is None:
            from metagov.config.loader import ConfigLoader

            self._config = ConfigLoader().load(self.config_path)
        return self._config

    @property
    def facade(self) -> Any:
        """
        Get the governance facade built from configuration.

        Raises:
            PolicyError: If the configured policy pack is invalid.
            StorageError: If the audit store cannot be opened.
        """
        if self._facade is None:
            from metagov.engine.governance import GovernanceFacade

            self._facade = GovernanceFacade.from_config(self.config)
        return self._facade

    @property
    def audit_log(self) -> Any:
        """
        Get the opened audit log.

        Reuses the facade's log when a facade has been built.
        """
        if self._facade is not None:
            return self._facade.audit_log
        if self._audit_log is None:
            from metagov.audit import create_audit_log

            audit_log = create_audit_log(self.config.audit)
            audit_log.open()
            self._audit_log = audit_log
        return self._audit_log

    def setup_logging(self) -> None:
        """Install the configured log handler, honoring -v and -q."""
        from metagov.config.log_setup import configure_logging

        level = None
        if self.verbose:
            level = "DEBUG"
        elif self.quiet:
            level = "ERROR"
        configure_logging(self.config.logging, level=level)

    def print(self, message: str, error: bool = False) -> None:
        """
        Print a message to stdout or stderr.

        Args:
            message: The message to print.
            error: If True, print to stderr.
        """
        if self.quiet and not error:
            return
        output = sys.stderr if error else sys.stdout
        print(message, file=output)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._facade is not None:
            self._facade.close()
            self._facade = None
        if self._audit_log is not None:
            self._audit_log.close()
            self._audit_log = None


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="metagov",
        description="MetaGov: governance decisions for skill corpus changes",
        epilog="Use 'metagov <command> --help' for more information on a command.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"metagov {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["table", "json", "yaml"],
        default="table",
        help="Output format (default: table)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )

    _register_commands(subparsers)

    return parser


def _register_commands(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """Register all command modules with the parser."""
    from metagov.cli.commands import audit as audit_cmd
    from metagov.cli.commands import config as config_cmd
    from metagov.cli.commands import decide as decide_cmd
    from metagov.cli.commands import policy as policy_cmd
    from metagov.cli.commands import serve as serve_cmd

    decide_cmd.register(subparsers)
    policy_cmd.register(subparsers)
    audit_cmd.register(subparsers)
    config_cmd.register(subparsers)
    serve_cmd.register(subparsers)


def run_command(
    args: argparse.Namespace,
    ctx: CLIContext,
) -> int:
    """
    Execute the selected command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context object.

    Returns:
        Exit code.
    """
    if not hasattr(args, "func"):
        return EXIT_ERROR

    try:
        ctx.setup_logging()
        return args.func(args, ctx)
    except ConfigurationError as e:
        ctx.print_error(str(e))
        return EXIT_CONFIG_ERROR
    except AuditFailureError as e:
        ctx.print_error(str(e))
        return EXIT_AUDIT_FAILURE
    except (PolicyError, RegistryError, ValidationError) as e:
        ctx.print_error(str(e))
        return EXIT_VALIDATION_ERROR
    except MetaGovError as e:
        ctx.print_error(str(e))
        return EXIT_ERROR
    except KeyboardInterrupt:
        ctx.print("\nOperation cancelled.", error=True)
        return EXIT_ERROR
    except Exception as e:
        ctx.print_error(f"Unexpected error: {e}")
        if ctx.verbose:
            logger.exception("Unhandled error")
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    ctx = CLIContext(
        config_path=args.config,
        verbose=args.verbose,
        quiet=args.quiet,
        output_format=args.format,
    )

    try:
        return run_command(args, ctx)
    finally:
        ctx.cleanup()


if __name__ == "__main__":
    sys.exit(main())
