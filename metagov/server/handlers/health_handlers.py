"""
Health check handlers.

This module provides the liveness endpoint used by load balancers.
"""

import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiohttp import web

from metagov.version import __version__

logger = logging.getLogger("metagov.server.handlers.health")

_start_time = time.time()


async def health_check(request: "web.Request") -> "web.Response":
    """
    Health check endpoint.

    Reports the server as healthy when the audit log is open; otherwise
    decisions cannot be recorded and the endpoint returns 503.

    Returns:
        JSON response with status and component checks.
    """
    from aiohttp import web

    facade = request.app["facade"]
    audit_log = facade.audit_log

    checks: dict[str, dict[str, Any]] = {
        "policies": {"status": "ready", "count": len(facade.registry)},
    }
    if audit_log.is_open:
        checks["audit"] = {"status": "ready", "last_sequence": audit_log.last_sequence}
    else:
        checks["audit"] = {"status": "closed"}

    healthy = audit_log.is_open
    return web.json_response(
        {
            "status": "healthy" if healthy else "unhealthy",
            "version": __version__,
            "uptime_seconds": round(time.time() - _start_time, 3),
            "checks": checks,
        },
        status=200 if healthy else 503,
    )
