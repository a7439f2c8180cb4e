"""Exception handlers — one place that turns errors into HTTP responses.

Learn: Services raise typed ApiErrors and never build responses
themselves. The handlers registered here map every error to the
standard envelope:

    ApiError subclass        → its status_code (400/401/403/404/409)
    RequestValidationError   → 400 with one message per invalid field
    HTTPException            → its status (e.g. 404 for unknown routes)
    SQLAlchemyError          → 500 "Database operation failed"
    anything else            → 500 "Something went wrong"

Outside production, error bodies also carry the formatted traceback
under "stack".
"""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.config import Settings
from marketplace.errors import ApiError, AuthenticationError

logger = structlog.get_logger()


def _format_validation_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {error.get('msg')}" if field else str(error.get("msg"))


def register_exception_handlers(app: FastAPI, config: Settings) -> None:
    """Attach the error → envelope handlers to app."""

    def respond(
        request: Request,
        exc: Exception,
        status_code: int,
        message: str,
        errors: list[str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> JSONResponse:
        log = logger.error if status_code >= 500 else logger.info
        log(
            "request.failed",
            method=request.method,
            path=request.url.path,
            status=status_code,
            error=message,
            exc_info=status_code >= 500,
        )
        body: dict = {"success": False, "message": message}
        if errors:
            body["errors"] = errors
        if not config.is_production:
            body["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(status_code=status_code, content=body, headers=headers)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        return respond(request, exc, exc.status_code, exc.message, exc.errors, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = [_format_validation_error(e) for e in exc.errors()]
        message = errors[0] if errors else "Validation error"
        return respond(request, exc, 400, message, errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = "API endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return respond(request, exc, exc.status_code, message, headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        return respond(request, exc, 500, "Database operation failed")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        return respond(request, exc, 500, "Something went wrong")
