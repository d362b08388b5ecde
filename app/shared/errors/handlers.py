"""
Centralized error handlers for FastAPI.

Maps escrow domain errors to HTTP responses.
Domain errors carry user-facing messages, which are returned as
``detail``; unexpected errors never expose internals.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.escrow.errors import (
    AlreadyInTradeError,
    AssetLockedError,
    AssetNotInOfferError,
    AssetNotOwnedError,
    EscrowDomainError,
    GatewayFailureError,
    InvalidTransitionError,
    NoActiveSessionError,
    NotAParticipantError,
    SelfTradeError,
)

logger = logging.getLogger(__name__)

HTTP_403 = 403
HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503

# Most specific first: AssetNotInOfferError subclasses InvalidTransitionError.
ERROR_STATUS: list[tuple[type[EscrowDomainError], int, str]] = [
    (NoActiveSessionError, HTTP_404, "No active trade"),
    (NotAParticipantError, HTTP_403, "Not a participant"),
    (AlreadyInTradeError, HTTP_409, "Already in a trade"),
    (SelfTradeError, HTTP_422, "Cannot trade with yourself"),
    (AssetNotOwnedError, HTTP_422, "Asset not owned"),
    (AssetNotInOfferError, HTTP_422, "Asset not in offer"),
    (AssetLockedError, HTTP_409, "Asset locked"),
    (InvalidTransitionError, HTTP_409, "Invalid transition"),
    (GatewayFailureError, HTTP_503, "Inventory unavailable"),
]


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def status_for(exc: EscrowDomainError) -> tuple[int, str]:
    """Return the HTTP status and error label for a domain error."""
    for error_type, status_code, label in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, label
    return HTTP_500, "Internal server error"


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(EscrowDomainError)
    async def handle_escrow_domain(
        _request: Request, exc: EscrowDomainError
    ) -> JSONResponse:
        """Map every escrow domain error to its status and message."""
        status_code, label = status_for(exc)
        if status_code >= HTTP_500:
            logger.error("Escrow error (%s): %s", type(exc).__name__, exc.message)
            if status_code == HTTP_500:
                return _error_response(status_code, label)
        else:
            logger.warning("Escrow request rejected (%s): %s", type(exc).__name__, exc.message)
        return _error_response(status_code, label, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
