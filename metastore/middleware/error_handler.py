"""Global exception handler middleware."""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from metastore.exceptions import (
    ConflictError,
    MetastoreError,
    ObjectNotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from metastore.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    ValidationError: 400,
    ObjectNotFoundError: 404,
    ConflictError: 409,
    StoreUnavailableError: 503,
}


def _status_for(exc: MetastoreError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(code="INTERNAL_ERROR", message=str(exc)).model_dump(exclude_none=True),
            )


async def metastore_error_handler(request: Request, exc: MetastoreError) -> JSONResponse:
    return JSONResponse(
        status_code=_status_for(exc),
        content=ErrorResponse(code=exc.code, message=str(exc)).model_dump(exclude_none=True),
    )


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MetastoreError, metastore_error_handler)
