"""
Error Handlers
Global exception handlers rendering every failure as the error envelope

Invariants:
    - BugTrackerError -> status derived from its ErrorKind
    - RequestValidationError -> 400 with field-level details
    - Unknown routes -> 404 "Route Not Found - <path>"
    - Exception (catch-all) -> 500, internals only exposed when DEBUG is on
"""

import traceback
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bug_tracker.core.config import settings
from bug_tracker.core.errors import BugTrackerError, ErrorKind

logger = structlog.get_logger()

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_VALUE_ERROR_PREFIX = "Value error, "


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_body(
    message: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    exc: Optional[BaseException] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if exc is not None and settings.DEBUG:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def _request_context(request: Request) -> Dict[str, Any]:
    principal = getattr(request.state, "principal", None)
    return {
        "method": request.method,
        "path": request.url.path,
        "actor_id": str(principal.id) if principal is not None else None,
    }


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(BugTrackerError)
    async def domain_error_handler(request: Request, exc: BugTrackerError):
        status_code = status_for(exc.kind)
        log = logger.error if status_code >= 500 else logger.warning
        log("Request failed", kind=exc.kind.value, error=exc.message, status_code=status_code, **_request_context(request))
        return JSONResponse(status_code=status_code, content=error_body(exc.message, exc.errors, exc))


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        message = details[0]["message"] if details else "Invalid request data"
        logger.warning("Request validation failed", errors=details, **_request_context(request))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message, details))


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            message = f"Route Not Found - {request.url.path}"
        else:
            message = str(exc.detail)
        logger.warning("HTTP error", status_code=exc.status_code, error=message, **_request_context(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message),
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", error=str(exc), exc_info=True, **_request_context(request))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("An unexpected error occurred", exc=exc),
        )


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    details = []
    for error in exc.errors():
        message = str(error.get("msg", ""))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        details.append({
            "field": ".".join(str(loc) for loc in error.get("loc", ()) if loc != "body"),
            "message": message,
            "type": error.get("type"),
        })
    return details
