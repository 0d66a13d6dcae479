"""
API route definitions for the MetaGov server.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

logger = logging.getLogger("metagov.server.routes")


def setup_routes(app: "web.Application") -> None:
    """
    Set up all API routes on the application.

    Args:
        app: The aiohttp application instance.
    """
    from metagov.server.handlers import (
        audit_handlers,
        decide_handlers,
        health_handlers,
        policy_handlers,
    )

    app.router.add_get("/v1/health", health_handlers.health_check, name="health")

    app.router.add_post("/v1/decide", decide_handlers.decide, name="decide")

    app.router.add_get("/v1/policies", policy_handlers.list_policies, name="policies_list")

    app.router.add_get("/v1/audit", audit_handlers.list_entries, name="audit_list")
    app.router.add_get("/v1/audit/stats", audit_handlers.get_stats, name="audit_stats")
    app.router.add_get("/v1/audit/{request_id}", audit_handlers.get_entry, name="audit_get")

    logger.debug(f"Registered {len(app.router.routes())} routes")
