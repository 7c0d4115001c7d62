"""
Exception handlers.

Register these on a FastAPI app instance via `register_exception_handlers(app)`.

Response shapes:
- WorkflowError        -> {message, kind} with a status chosen by kind
- AuthError            -> {message} (401 or 403)
- HTTPException        -> {message}
- validation errors    -> 400 {message, kind: "validation_error", errors}
- anything else        -> 500 {message: "Internal server error"}, logged
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse
from domain.errors import WorkflowError
from services.auth_service import AuthError
from services.redemption_service import RedemptionUnavailableError

logger = logging.getLogger(__name__)

# Kinds not listed here are request problems (400)
STATUS_BY_KIND: dict[str, int] = {
    "code_not_found": 403,
    "code_inactive": 403,
    "code_exhausted": 403,
    "code_expired": 403,
    "dealer_inactive": 403,
    "not_offer_owner": 403,
    "vehicle_not_found": 404,
    "offer_not_found": 404,
    "dealer_not_found": 404,
    "buy_code_not_found": 404,
    "transaction_not_found": 404,
    "duplicate_vin": 409,
    "duplicate_username": 409,
    "duplicate_code": 409,
    "concurrent_update": 409,
    "sheet_unavailable": 502,
}


def status_for_kind(kind: str) -> int:
    return STATUS_BY_KIND.get(kind, 400)


async def workflow_error_handler(request: Request, exc: WorkflowError):
    kind = exc.kind.value
    return JSONResponse(
        status_code=status_for_kind(kind),
        content=ErrorResponse(message=exc.message, kind=kind).model_dump(),
    )


async def auth_error_handler(request: Request, exc: AuthError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=exc.message).model_dump(exclude_none=True),
        headers=headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": str(error.get("msg", "")),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request data",
            "kind": "validation_error",
            "errors": errors,
        },
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"method": request.method, "url_path": request.url.path},
    )
    # Details stay in the logs
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"},
    )


async def redemption_unavailable_handler(request: Request, exc: RedemptionUnavailableError):
    logger.error("Redemption function failed", exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"message": "Buy code redemption is temporarily unavailable"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the given FastAPI app."""
    app.add_exception_handler(WorkflowError, workflow_error_handler)
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RedemptionUnavailableError, redemption_unavailable_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
