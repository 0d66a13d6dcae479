"""
Audit handlers for the MetaGov server.

This module provides handlers for audit log query endpoints.
"""

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from aiohttp import web

from metagov.exceptions import ValidationError
from metagov.models.audit import AuditEntry
from metagov.models.decision import DecisionStatus
from metagov.server.middleware import error_body

logger = logging.getLogger("metagov.server.handlers.audit")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


def _parse_query(query: Mapping[str, str]) -> tuple[str | None, int]:
    status = query.get("status")
    if status:
        status = status.upper()
        if status not in {s.value for s in DecisionStatus}:
            raise ValidationError(
                f"Unknown status: {query.get('status')}",
                details={"allowed": [s.value for s in DecisionStatus]},
            )

    raw_limit = query.get("limit", str(DEFAULT_LIMIT))
    try:
        limit = int(raw_limit)
    except ValueError as e:
        raise ValidationError(f"Invalid limit: {raw_limit}") from e
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return status, min(limit, MAX_LIMIT)


def _recent(entries: Iterable[AuditEntry], status: str | None, limit: int) -> list[AuditEntry]:
    recent: deque[AuditEntry] = deque(maxlen=limit)
    for entry in entries:
        if status and entry.decision.final_status.value != status:
            continue
        recent.append(entry)
    return list(recent)


async def list_entries(request: "web.Request") -> "web.Response":
    """
    List recent audit entries, oldest first.

    Query parameters:
        status: Filter by final status (APPROVED, BLOCKED, CONDITIONAL)
        limit: Maximum results (default: 100, max: 1000)

    Returns:
        JSON response with the entries and the snapshot bound.
    """
    from aiohttp import web

    status, limit = _parse_query(request.query)
    audit_log = request.app["facade"].audit_log

    # Entries are read from the store; keep the event loop free
    loop = asyncio.get_running_loop()
    snapshot = audit_log.entries()
    entries = await loop.run_in_executor(None, _recent, snapshot, status, limit)

    return web.json_response({
        "entries": [e.to_dict() for e in entries],
        "total": len(entries),
        "limit": limit,
        "last_sequence": snapshot.upper,
    })


async def get_entry(request: "web.Request") -> "web.Response":
    """
    Get the audit entries recorded for one request ID.

    Returns:
        JSON response with the entries, or 404 if none exist.
    """
    from aiohttp import web

    change_request_id = request.match_info["request_id"]
    audit_log = request.app["facade"].audit_log

    loop = asyncio.get_running_loop()
    entries = await loop.run_in_executor(None, audit_log.find, change_request_id)

    if not entries:
        return web.json_response(
            error_body(
                "NotFound",
                f"No audit entry for request: {change_request_id}",
                request.get("request_id", "unknown"),
            ),
            status=404,
        )

    return web.json_response({
        "request_id": change_request_id,
        "entries": [e.to_dict() for e in entries],
    })


async def get_stats(request: "web.Request") -> "web.Response":
    """Return decision counts by final status."""
    from aiohttp import web

    audit_log = request.app["facade"].audit_log
    loop = asyncio.get_running_loop()
    stats = await loop.run_in_executor(None, audit_log.stats)
    return web.json_response(stats)
