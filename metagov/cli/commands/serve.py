"""
Serve command for the MetaGov CLI.

This module implements 'metagov serve', which runs the HTTP API.

Usage:
    metagov serve [--host HOST] [--port PORT]
"""

import argparse
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from metagov.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the serve command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API server",
        description="Serve governance decisions and audit queries over HTTP.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host address to bind to (default: from configuration)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: from configuration)",
    )
    parser.set_defaults(func=run_serve)


def run_serve(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """Execute the serve command."""
    from metagov.cli.main import EXIT_SUCCESS
    from metagov.server import run_server

    config = ctx.config
    host = args.host or config.server.host
    port = args.port if args.port is not None else config.server.port

    ctx.print(f"Starting MetaGov server on http://{host}:{port}")
    run_server(config=config, host=host, port=port)
    return EXIT_SUCCESS
