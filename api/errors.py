"""Global exception handlers for FastAPI.

Finance failures travel as exceptions inside the core and leave the API as
APIResponse error values with a matching status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.errors import (
    ConflictError, FinanceError, NotFoundError, StorageError, ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 503),
)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _respond(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, _request_id(request)).model_dump(mode="json"),
    )


def status_for(exc: FinanceError) -> int:
    """HTTP status for a finance error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(FinanceError)
    async def finance_error_handler(request: Request, exc: FinanceError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("Finance operation failed: %s", exc)
        return _respond(request, status_code, exc.code, str(exc))

    @app.exception_handler(PydanticValidationError)
    async def model_error_handler(request: Request, exc: PydanticValidationError):
        return _respond(
            request, 400, ErrorCodes.VALIDATION_ERROR,
            "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _respond(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(KeyError)
    async def missing_field_handler(request: Request, exc: KeyError):
        return _respond(request, 400, ErrorCodes.INVALID_REQUEST, f"Missing field {exc}")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _respond(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
