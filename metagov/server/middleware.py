"""
HTTP middleware for the MetaGov server.

This module provides middleware factories for request IDs, error
handling and request logging.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from aiohttp import web

from metagov.exceptions import (
    AuditFailureError,
    ConfigurationError,
    MetaGovError,
    NotFoundError,
    PolicyError,
    RegistryError,
    StorageError,
    ValidationError,
)
from metagov.models.base import generate_uuid, utc_now

# Type alias for aiohttp middleware handler
Handler = Callable[["web.Request"], Awaitable["web.StreamResponse"]]
Middleware = Callable[["web.Request", Handler], Awaitable["web.StreamResponse"]]


logger = logging.getLogger("metagov.server")


# Checked in order, so subclasses come before their bases.
EXCEPTION_STATUS_MAP: list[tuple[type[Exception], int]] = [
    (ValidationError, 400),
    (PolicyError, 400),
    (NotFoundError, 404),
    (RegistryError, 409),
    (AuditFailureError, 503),
    (StorageError, 500),
    (ConfigurationError, 500),
    (MetaGovError, 500),
]


def status_for(error: Exception) -> int:
    """Return the HTTP status code for an exception."""
    for exc_type, code in EXCEPTION_STATUS_MAP:
        if isinstance(error, exc_type):
            return code
    return 500


def error_body(error_type: str, message: str, request_id: str, **extra: object) -> dict[str, object]:
    """Build the JSON error envelope shared by handlers and middleware."""
    error: dict[str, object] = {
        "type": error_type,
        "message": message,
        "request_id": request_id,
    }
    error.update(extra)
    return {"error": error}


@dataclass
class RequestInfo:
    """
    Information about an HTTP request for logging.

    Attributes:
        request_id: Unique identifier for the request.
        method: HTTP method.
        path: Request path.
        remote: Remote address.
        start_time: Request start time.
        status_code: Response status code.
        duration_ms: Request duration in milliseconds.
        error: Error message if request failed.
    """

    request_id: str = field(default_factory=generate_uuid)
    method: str = ""
    path: str = ""
    remote: str = ""
    start_time: datetime = field(default_factory=utc_now)
    status_code: int = 0
    duration_ms: float = 0.0
    error: str | None = None


def create_request_id_middleware() -> Middleware:
    """
    Create middleware that ensures every request has a unique ID.

    The request ID is taken from the X-Request-ID header if present,
    otherwise a new UUID is generated. It is echoed on the response.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def request_id_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        request_id = request.headers.get("X-Request-ID") or generate_uuid()
        request["request_id"] = request_id

        try:
            response = await handler(request)
        except web.HTTPException as e:
            e.headers["X-Request-ID"] = request_id
            raise
        response.headers["X-Request-ID"] = request_id
        return response

    return request_id_middleware


def create_error_handler_middleware() -> Middleware:
    """
    Create error handling middleware.

    Converts MetaGov exceptions to JSON error responses using
    ``EXCEPTION_STATUS_MAP``; anything else becomes a 500.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def error_handler_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        """Handle exceptions and convert to HTTP responses."""
        request_id = request.get("request_id", "unknown")
        try:
            return await handler(request)

        except web.HTTPException:
            raise

        except MetaGovError as e:
            status = status_for(e)
            logger.warning(
                f"MetaGov error: {e.__class__.__name__}: {e.message}",
                extra={"request_id": request_id, "details": e.details},
            )
            extra: dict[str, object] = {"details": e.details}
            if isinstance(e, AuditFailureError) and e.decision is not None:
                extra["decision"] = e.decision.to_dict()
            return web.json_response(
                error_body(e.__class__.__name__, e.message, request_id, **extra),
                status=status,
            )

        except asyncio.CancelledError:
            raise

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {e}",
                extra={"request_id": request_id},
            )
            return web.json_response(
                error_body("InternalError", "An internal error occurred", request_id),
                status=500,
            )

    return error_handler_middleware


def create_request_logging_middleware(log_level: int = logging.INFO) -> Middleware:
    """
    Create request logging middleware.

    Logs method, path, status and duration of each request.

    Args:
        log_level: Logging level for request logs.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def request_logging_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        info = RequestInfo(
            request_id=request.get("request_id") or generate_uuid(),
            method=request.method,
            path=request.path,
            remote=request.remote or "unknown",
        )
        start_time = time.perf_counter()

        try:
            response = await handler(request)
            info.status_code = response.status
            return response

        except web.HTTPException as e:
            info.status_code = e.status
            info.error = str(e)
            raise

        except Exception as e:
            info.status_code = 500
            info.error = str(e)
            raise

        finally:
            info.duration_ms = (time.perf_counter() - start_time) * 1000
            log_message = (
                f"{info.method} {info.path} "
                f"{info.status_code} "
                f"{info.duration_ms:.2f}ms "
                f"[{info.request_id[:8]}]"
            )
            if info.error:
                logger.log(log_level, f"{log_message} error={info.error}")
            else:
                logger.log(log_level, log_message)

    return request_logging_middleware
