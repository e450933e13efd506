"""Translate domain errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from listen_together.domain.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolationError,
    DependencyUnavailableError,
    DomainError,
    EntityNotFoundError,
    InvalidOperationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RATE_LIMITED_RULES = frozenset({"USER_QUEUE_LIMIT"})


def status_for(error: DomainError) -> int:
    """HTTP status code for a domain error."""
    if isinstance(error, ValidationError | InvalidOperationError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, EntityNotFoundError):
        return 404
    if isinstance(error, BusinessRuleViolationError):
        return 429 if error.rule in RATE_LIMITED_RULES else 409
    if isinstance(error, DependencyUnavailableError):
        return 503
    return 500


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status = status_for(exc)
    if status == 503:
        logger.warning("Dependency unavailable on %s: %s", request.url.path, exc.message)
    elif status >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return JSONResponse(
        status_code=status,
        content={"success": False, "message": exc.message, "code": exc.code},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors like any other validation failure."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Invalid request",
            "code": "VALIDATION_ERROR",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
