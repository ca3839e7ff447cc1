"""Global error handlers: domain failures become JSON bodies carrying request_id."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from meetmux.api.request_id import get_request_id
from meetmux.domain.errors import (
    AuthenticationRequired,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from meetmux.infra.errors import INTEGRITY_ERRORS, STORAGE_ERRORS

logger = logging.getLogger(__name__)


def status_for(exc: DomainError) -> int:
    # AuthenticationRequired subclasses AuthorizationError; check it first
    if isinstance(exc, AuthenticationRequired):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_400_BAD_REQUEST


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {"detail": exc.detail, "request_id": get_request_id(request)}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": get_request_id(request)}
        return JSONResponse(status_code=422, content=jsonable_encoder(payload))

    @app.exception_handler(DomainError)
    async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
        payload = {"detail": exc.reason, "request_id": get_request_id(request)}
        return JSONResponse(status_code=status_for(exc), content=payload)

    async def storage_exc_handler(request: Request, exc: Exception):
        logger.exception("storage failure path=%s", request.url.path, exc_info=exc)
        payload = {"detail": "storage_unavailable", "request_id": get_request_id(request)}
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=payload)

    async def integrity_exc_handler(request: Request, exc: Exception):
        logger.warning("constraint violation path=%s error=%s", request.url.path, type(exc).__name__)
        payload = {"detail": "conflict", "request_id": get_request_id(request)}
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=payload)

    for exc_type in STORAGE_ERRORS:
        app.add_exception_handler(exc_type, storage_exc_handler)
    # More specific than PostgresError, so these win the handler lookup
    for exc_type in INTEGRITY_ERRORS:
        app.add_exception_handler(exc_type, integrity_exc_handler)
