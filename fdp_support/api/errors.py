"""
API Error Handlers
Turn domain rejections into structured JSON responses
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from fdp_support.domain.errors import AllocationError, TransientStoreError, ValidationError

logger = logging.getLogger(__name__)


def _response(exc: AllocationError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def allocation_error_handler(request: Request, exc: AllocationError) -> JSONResponse:
    if isinstance(exc, TransientStoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return _response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or None
    message = first.get("msg", "Invalid request")
    error = ValidationError(f"{field}: {message}" if field else message, field=field)
    logger.warning("%s %s rejected (validation_error): %s", request.method, request.url.path, error.message)
    return _response(error)


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("❌ Store failure on %s %s: %s", request.method, request.url.path, exc)
    return _response(TransientStoreError("Database temporarily unavailable; retry the request"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all handlers to an app (main app and test apps alike)"""
    app.add_exception_handler(AllocationError, allocation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
