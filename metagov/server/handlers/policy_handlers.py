"""
Policy handlers for the MetaGov server.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from metagov.policies.builtin import describe_policy

logger = logging.getLogger("metagov.server.handlers.policy")


async def list_policies(request: "web.Request") -> "web.Response":
    """
    List the registered policies in priority order.

    Returns:
        JSON response with one summary per policy.
    """
    from aiohttp import web

    registry = request.app["facade"].registry
    policies = [describe_policy(p) for p in registry.all()]
    return web.json_response({
        "policies": policies,
        "total": len(policies),
    })
