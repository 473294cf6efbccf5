"""
Standardized response helpers and the exception handlers that produce the
error envelope.

Success:  {"success": true, "data": ..., "message": ...}
Failure:  {"success": false, "error": {"code", "message", "details"}}
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from osintdesk.core.errors import OsintDeskError

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


class APIResponse(BaseModel):
    """Standard API response model"""

    success: bool = True
    message: str | None = None
    data: Any | None = None


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[str] = []


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody


def success_response(data: Any = None, message: str | None = None) -> APIResponse:
    """Create a successful response"""
    return APIResponse(success=True, message=message, data=data)


def error_json(
    status_code: int, code: str, message: str, details: list[str] | None = None
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(code=code, message=message, details=details or [])
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def format_request_errors(exc: RequestValidationError) -> list[str]:
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        details.append(f"{loc}: {err.get('msg')}")
    return details


async def domain_error_handler(request: Request, exc: OsintDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_json(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_json(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Validation failed",
        format_request_errors(exc),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    fallback = "INTERNAL" if exc.status_code >= 500 else "ERROR"
    code = STATUS_CODES.get(exc.status_code, fallback)
    return error_json(exc.status_code, code, str(exc.detail))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return error_json(500, "INTERNAL", "Internal server error")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_json(500, "INTERNAL", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OsintDeskError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
