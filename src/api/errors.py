"""Map domain errors to JSON error responses.

Every error body has the shape {"success": false, "message": ..., "errors"?: [...]}.
Unexpected exceptions become a generic 500 without internal detail.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from domain.model.errors import (
    AuthenticationError,
    ConflictError,
    DispatchError,
    DomainError,
    InvalidCodeError,
    NotFoundError,
    OtpExpiredError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Looked up along the exception's MRO, so the most specific class wins.
STATUS_CODES: dict[type[DomainError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidCodeError: status.HTTP_400_BAD_REQUEST,
    OtpExpiredError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    DispatchError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DomainError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: DomainError) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, errors: list[str] | None = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    if status_code >= 500:
        logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
    else:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "error": type(exc).__name__},
        )
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.message, getattr(exc, "errors", None)),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", messages),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
