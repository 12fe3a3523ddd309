"""
Custom middleware and exception handlers for the FastAPI application.
Provides request logging and the JSON error envelope.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

import structlog

from stakeflow.core.config import settings
from stakeflow.core.exceptions import (
    ConflictError, JobAlreadyRunningError, NotFoundError, StakeflowException, ValidationError
)
from stakeflow.api.schemas.common import create_error_response


logger = structlog.get_logger(__name__)


def error_json(status_code: int, message: str, error: str, details=None) -> JSONResponse:
    body = create_error_response(message=message, error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            process_time = time.perf_counter() - start_time
            response.headers["X-Process-Time"] = str(process_time)

            logger.info(
                "Request completed",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code,
                process_time=process_time,
            )
            return response

        except Exception as e:
            process_time = time.perf_counter() - start_time
            logger.error(
                "Request failed",
                method=request.method,
                url=str(request.url),
                error=str(e),
                process_time=process_time,
            )
            return error_json(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An internal server error occurred",
                "INTERNAL_SERVER_ERROR",
            )


def status_for(exc: StakeflowException) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (ConflictError, JobAlreadyRunningError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def stakeflow_exception_handler(request: Request, exc: StakeflowException) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Request error", url=str(request.url), code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", url=str(request.url), code=exc.code, error=exc.message)
    return error_json(status_code, exc.message, exc.code, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_json(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        "VALIDATION_ERROR",
        {"errors": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ]},
    )


def add_middleware(app: FastAPI) -> None:
    """Add all middleware and exception handlers to the FastAPI application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(StakeflowException, stakeflow_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
