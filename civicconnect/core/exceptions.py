"""
Domain error taxonomy and global exception handlers.

Services raise the ``DomainError`` subclasses below; the handlers turn
them (and anything unexpected) into JSON responses without leaking
stack traces to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class DomainError(Exception):
    """Base class for every failure the engine reports to callers."""

    status_code = 400
    code = "error"
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnauthenticatedError(DomainError):
    status_code = 401
    code = "unauthenticated"
    default_detail = "Could not validate credentials"


class ForbiddenError(DomainError):
    status_code = 403
    code = "forbidden"
    default_detail = "Not allowed to perform this action"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"
    default_detail = "Resource not found"


class InvalidTransitionError(DomainError):
    status_code = 409
    code = "invalid_transition"
    default_detail = "Status transition not allowed"


class InvalidStateError(DomainError):
    status_code = 409
    code = "invalid_state"
    default_detail = "Operation not allowed in the current state"


class AlreadyAssignedError(DomainError):
    status_code = 409
    code = "already_assigned"
    default_detail = "Issue is already assigned"


class SelfVoteError(DomainError):
    status_code = 400
    code = "self_vote"
    default_detail = "You cannot upvote your own issue"


class DuplicateVoteError(DomainError):
    status_code = 400
    code = "duplicate_vote"
    default_detail = "You have already upvoted this issue"


class InvalidSessionError(DomainError):
    status_code = 400
    code = "invalid_session"
    default_detail = "Payment session could not be resolved"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
    default_detail = "Resource already exists"


class InvalidInputError(DomainError):
    status_code = 422
    code = "invalid_input"
    default_detail = "Invalid input"


# ── Handlers ────────────────────────────────────────────────────────
async def _domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, "success": False},
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "code": "conflict", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(DomainError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
