import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES = {
    400: "VALIDATION",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    500: "INTERNAL",
}


class AppError(Exception):
    status_code = 500
    code = "INTERNAL"
    default_message = "Internal server error."

    def __init__(self, message: Optional[str] = None, errors: Optional[Sequence[str]] = None) -> None:
        self.message = message or self.default_message
        self.errors: List[str] = list(errors or [])
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    code = "VALIDATION"
    default_message = "Validation failed."


class InvalidStatus(ValidationFailed):
    code = "INVALID_STATUS"
    default_message = "Invalid status."


class Unauthenticated(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Could not validate credentials."


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Operation not permitted for your role."


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists."


def _error_body(
    request: Request,
    code: str,
    message: str,
    errors: Optional[List[str]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "success": False,
        "code": code,
        "message": message,
        "path": request.url.path,
    }
    if errors:
        payload["errors"] = errors
    return payload


def _format_validation_errors(exc: RequestValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        text = error.get("msg", "Invalid value")
        messages.append(f"{field}: {text}" if field else text)
    return messages


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.code, exc.message, exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = _format_validation_errors(exc)
        logger.info("%s %s rejected (VALIDATION): %s", request.method, request.url.path, messages)
        return JSONResponse(
            status_code=400,
            content=_error_body(request, "VALIDATION", "Validation failed.", messages),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error."
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "INTERNAL", "Internal server error."),
        )
