"""
Global Error Handling

This module defines application-wide exceptions and exception handlers for the
docs assistant server.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
- Treat client cancellation as a normal outcome, not a failure
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("docs.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class RequestAborted(Exception):
    """Raised when the caller cancelled the request before it completed."""


class InvalidNamespaceError(ValueError):
    """Raised when a namespace or search data key is missing or malformed."""


class SearchDataNotFoundError(LookupError):
    """Raised when no search data exists for a requested key."""


class UpstreamServiceError(RuntimeError):
    """Raised when the language model or embedding provider fails."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def upstream_error_handler(
    request: Request,
    exc: UpstreamServiceError,
) -> JSONResponse:
    """
    Map a failed upstream model call to a 502 response.

    The upstream message may echo prompt content, so only the error class is
    returned; the full message is logged.
    """
    logger.error(
        "Upstream service failed during %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "upstream_error", "detail": type(exc).__name__},
    )


async def search_data_not_found_handler(
    request: Request,
    exc: SearchDataNotFoundError,
) -> JSONResponse:
    """
    Map a missing search data source to a 404 response.
    """
    logger.warning("Search data not found: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "search_data_not_found", "detail": str(exc)},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    This handler should be registered with FastAPI as the final safety net
    for any exception not otherwise handled by route-level or framework-level
    handlers.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    - Ensures consistent error response format across the entire API.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
