"""
Application error type and the FastAPI handlers that render every failure
as {"error": {"code", "message", "status"}}.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from buscai.config import settings

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """
    Business rule failure carrying an HTTP status and a message slug
    such as 'subscription_required' or 'insufficient_funds'.
    """

    def __init__(self, status_code: int, message: str, code: str = "APP_ERROR", details=None):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)


def assert_writable() -> None:
    """Reject mutations while the deployment runs in read-only mode."""
    if settings.READONLY_MODE:
        raise AppError(503, "read_only_mode", code="READ_ONLY")


def error_body(status_code: int, message: str, code: str, details=None) -> dict:
    body = {"code": code, "message": message, "status": status_code}
    if details is not None:
        body["details"] = details
    return {"error": body}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("app_error", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.code, exc.details),
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body(400, "invalid_request", "VALIDATION_ERROR", issues),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unexpected_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content=error_body(500, "Erro interno", "UNEXPECTED_ERROR"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
