# crm_reports/logging/exception_handlers.py

import logging
import traceback

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse

from crm_reports.logging.recorder import record_request, safe_json_dumps

logger = logging.getLogger(__name__)


def _convert_error(error):
    """Make validation errors JSON safe."""
    if isinstance(error, dict):
        return {k: _convert_error(v) for k, v in error.items()}
    elif isinstance(error, list):
        return [_convert_error(item) for item in error]
    elif isinstance(error, (int, float, bool)) or error is None:
        return error
    return str(error)


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database"""
    error_traceback = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    record_request(
        request,
        500,
        response_body=safe_json_dumps({"error": str(exc), "type": type(exc).__name__, "traceback": error_traceback}),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error(f"Response validation failed on {request.method} {request.url.path}")
    record_request(request, 500, response_body=safe_json_dumps(exc.errors()))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    safe_errors = _convert_error(exc.errors())
    record_request(request, 422, response_body=safe_json_dumps(safe_errors))
    return JSONResponse(status_code=422, content={"detail": safe_errors})


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 400:
        record_request(
            request,
            exc.status_code,
            response_body=safe_json_dumps({"detail": exc.detail, "headers": getattr(exc, "headers", None)}),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
