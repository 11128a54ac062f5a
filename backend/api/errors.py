"""Exception handlers mapping boundary and store failures onto the error taxonomy."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from services.errors import InternalError, UpstreamTimeout

logger = logging.getLogger(__name__)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def _timeout_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(
        "Upstream call timed out",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=UpstreamTimeout.status_code,
        content={"detail": UpstreamTimeout.default_detail},
    )


async def _store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(getattr(exc, "orig", None), TimeoutError):
        return await _timeout_handler(request, exc)
    logger.exception(
        "Unhandled database error",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=InternalError.status_code,
        content={"detail": InternalError.default_detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(TimeoutError, _timeout_handler)
    app.add_exception_handler(PoolTimeoutError, _timeout_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
