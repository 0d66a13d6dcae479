"""
Decision handlers for the MetaGov server.

This module provides the endpoint that submits a change request to the
governance facade.
"""

import asyncio
import functools
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from metagov.models.request import ChangeRequest
from metagov.server.middleware import error_body

logger = logging.getLogger("metagov.server.handlers.decide")


async def decide(request: "web.Request") -> "web.Response":
    """
    Decide a change request.

    Request body:
        {
            "id": "req-42",
            "description": "add new skill",
            "tags": ["new-skill", "database-change"],
            "timestamp": "2026-01-01T00:00:00Z"
        }

    Returns:
        JSON response with the Decision. Malformed bodies yield 400 and
        a decision that could not be audited yields 503 (via the error
        middleware).
    """
    from aiohttp import web

    request_id = request.get("request_id", "unknown")

    try:
        body = await request.json()
    except ValueError as e:
        return web.json_response(
            error_body("InvalidRequest", f"Invalid JSON body: {e}", request_id),
            status=400,
        )

    # ValidationError propagates to the error middleware as a 400
    change_request = ChangeRequest.from_dict(body)

    facade = request.app["facade"]
    loop = asyncio.get_running_loop()
    decision = await loop.run_in_executor(
        None, functools.partial(facade.decide, change_request)
    )

    logger.debug(
        f"Decided {change_request.id}: {decision.final_status.value}",
        extra={"request_id": request_id},
    )
    return web.json_response(decision.to_dict())
