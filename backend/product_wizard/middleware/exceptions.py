"""Application exceptions and the JSON error envelope.

Every error leaves the API as:

    {"error": {"code": "...", "message": "...", "details": {...}}}

A wizard step that fails validation is not an error in this sense; the
wizard router answers those itself with the step view (422).

Handlers, by what can reach them:
  ProductWizardError       → unknown wizard step, missing product, session store down
  HTTPException            → unknown route, wrong method
  RequestValidationError   → a submitted body that is not a field mapping of strings
  SQLAlchemyError          → database failures outside the wizard commit
  Exception                → anything else (logged with traceback, generic 500)
"""

import logging
from typing import Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ProductWizardError(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ResourceNotFoundError(ProductWizardError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class SessionStoreError(ProductWizardError):
    """The session store could not persist wizard state."""

    def __init__(self, message: str = "Session store unavailable"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="SESSION_STORE_UNAVAILABLE",
        )


def describe_integrity_error(exc: IntegrityError) -> tuple[str, str]:
    """Classify an integrity violation as (message, error_code)."""
    error_msg = str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
    lowered = error_msg.lower()

    if "unique" in lowered:
        return "A record with this value already exists", "DUPLICATE_RECORD"
    if "foreign key" in lowered:
        return "Referenced record does not exist", "FOREIGN_KEY_VIOLATION"
    if "not null" in lowered:
        return "Required field is missing", "NULL_VALUE_NOT_ALLOWED"
    return "Database constraint violation", "INTEGRITY_ERROR"


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _request_context(request: Request, **extra) -> dict:
    return {"path": request.url.path, "method": request.method, **extra}


# ── Handlers ─────────────────────────────────────────────────

async def app_error_handler(request: Request, exc: ProductWizardError) -> JSONResponse:
    logger.warning(
        f"{exc.error_code}: {exc.message}",
        extra=_request_context(request, error_code=exc.error_code),
    )
    return error_response(exc.status_code, exc.error_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=_request_context(request))
    return error_response(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body and query errors by field name ("name", not "body -> name")."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        errors.append({
            "field": ".".join(loc) or "body",
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"Rejected request on {request.url.path}: {[e['field'] for e in errors]}",
        extra=_request_context(request),
    )
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Validation error",
        details={"errors": errors},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.url.path}: {exc}", extra=_request_context(request))

    if isinstance(exc, IntegrityError):
        message, error_code = describe_integrity_error(exc)
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, error_code, message)
    if isinstance(exc, OperationalError):
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "DATABASE_UNAVAILABLE",
            "Database temporarily unavailable. Please try again.",
        )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "DATABASE_ERROR",
        "An unexpected database error occurred.",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra=_request_context(request),
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProductWizardError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
