"""
HTTP server module for MetaGov.

This module provides an aiohttp API for submitting change requests and
querying the audit log. MetaGov works as a library without running the
server.

Example:
    Running the server::

        from metagov.server import create_app, run_server

        app = create_app(config)
        run_server(app, host="0.0.0.0", port=8080)

    Or from the command line::

        metagov serve --host 0.0.0.0 --port 8080

Components:
    - app: Application factory and runner
    - routes: API route definitions
    - middleware: HTTP middleware (request IDs, logging, error handling)
"""

from metagov.server.app import MetaGovApplication, create_app, run_server

__all__ = [
    "MetaGovApplication",
    "create_app",
    "run_server",
]
