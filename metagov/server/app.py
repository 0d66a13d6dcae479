"""
MetaGov HTTP server application.

This module provides the application factory and server runner for the
MetaGov HTTP API.

Example:
    Running the server::

        from metagov.server import create_app, run_server
        from metagov.config import MetaGovConfig

        config = MetaGovConfig()
        app = create_app(config)
        run_server(app)
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from metagov.config.schema import MetaGovConfig
from metagov.engine.governance import GovernanceFacade

logger = logging.getLogger("metagov.server")


class MetaGovApplication:
    """
    MetaGov HTTP application.

    Wraps the aiohttp application with the governance facade and its
    lifecycle. A facade passed in by the caller is still closed when
    the application shuts down.

    Example:
        Creating and running the application::

            from metagov.server import MetaGovApplication

            app = MetaGovApplication(config)
            app.run()
    """

    def __init__(
        self,
        config: MetaGovConfig | None = None,
        facade: GovernanceFacade | None = None,
    ) -> None:
        """
        Initialize the application.

        Args:
            config: MetaGov configuration.
            facade: Pre-built facade; built from ``config`` if omitted.
        """
        self._config = config or MetaGovConfig()
        self._facade = facade
        self._app: "web.Application | None" = None

    @property
    def config(self) -> MetaGovConfig:
        """Get the configuration."""
        return self._config

    @property
    def app(self) -> "web.Application":
        """Get the aiohttp application, creating it if needed."""
        if self._app is None:
            self._app = self._create_app()
        return self._app

    def _create_app(self) -> "web.Application":
        """Create and configure the aiohttp application."""
        from aiohttp import web

        from metagov.server.middleware import (
            create_error_handler_middleware,
            create_request_id_middleware,
            create_request_logging_middleware,
        )
        from metagov.server.routes import setup_routes

        # Request ID first so every later middleware can read it; logging
        # sits outside the error handler so it sees mapped status codes.
        middlewares = [
            create_request_id_middleware(),
            create_request_logging_middleware(),
            create_error_handler_middleware(),
        ]

        app = web.Application(middlewares=middlewares)

        if self._facade is None:
            self._facade = GovernanceFacade.from_config(self._config)

        app["config"] = self._config
        app["facade"] = self._facade

        setup_routes(app)

        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)

        return app

    async def _on_startup(self, app: "web.Application") -> None:
        facade = app["facade"]
        logger.info(
            f"MetaGov server ready: {len(facade.registry)} policies, "
            f"audit backend {facade.audit_log.sink.name}"
        )

    async def _on_cleanup(self, app: "web.Application") -> None:
        logger.info("Shutting down MetaGov server...")
        app["facade"].close()
        logger.info("MetaGov server shut down")

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Run the server (blocking)."""
        from aiohttp import web

        web.run_app(
            self.app,
            host=host or self._config.server.host,
            port=port if port is not None else self._config.server.port,
            print=lambda msg: logger.info(msg),
        )


def create_app(
    config: MetaGovConfig | None = None,
    facade: GovernanceFacade | None = None,
) -> "web.Application":
    """
    Create a MetaGov HTTP application.

    Args:
        config: MetaGov configuration.
        facade: Pre-built governance facade (optional).

    Returns:
        Configured aiohttp Application.

    Example:
        Using with gunicorn::

            # In wsgi.py
            from metagov.server import create_app
            app = create_app()

        Then run with::

            gunicorn wsgi:app --worker-class aiohttp.GunicornWebWorker
    """
    return MetaGovApplication(config, facade).app


def run_server(
    app: "web.Application | None" = None,
    host: str = "127.0.0.1",
    port: int = 8080,
    config: MetaGovConfig | None = None,
) -> None:
    """
    Run the MetaGov HTTP server.

    Args:
        app: Pre-created application (optional).
        host: Host address to bind to.
        port: Port number to listen on.
        config: MetaGov configuration (used if app not provided).
    """
    from aiohttp import web

    if app is None:
        app = MetaGovApplication(config).app

    logger.info(f"Starting MetaGov server on http://{host}:{port}")

    web.run_app(
        app,
        host=host,
        port=port,
        print=lambda msg: logger.info(msg),
    )
