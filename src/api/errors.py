"""
Conversion of pipeline and upstream failures into HTTP error responses.

Every error body has the same shape (see ``APIError``): a human readable
``error``, a machine readable ``error_code`` and free-form ``details``.
"""

import logging
from typing import Any, Dict, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.models.providers.base import (
    ModelError,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamGenericError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from src.pipeline.chart.types import (
    ChartAnalysisError,
    ConfigurationError,
    InputValidationError,
    ResponseParseError,
    UploadTooLargeError,
)
from .models.common import APIError

logger = logging.getLogger(__name__)

# Most specific classes first; lookup walks the exception's MRO.
ERROR_STATUS: Dict[Type[Exception], Tuple[int, str]] = {
    UploadTooLargeError: (413, "file_too_large"),
    InputValidationError: (400, "invalid_input"),
    ConfigurationError: (500, "configuration_error"),
    ResponseParseError: (502, "response_parse_error"),
    UpstreamAuthError: (500, "upstream_auth_error"),
    UpstreamBadRequestError: (400, "upstream_bad_request"),
    UpstreamRateLimitError: (503, "upstream_rate_limited"),
    UpstreamTimeoutError: (504, "upstream_timeout"),
    UpstreamGenericError: (502, "upstream_error"),
    ModelError: (502, "upstream_error"),
    ChartAnalysisError: (500, "analysis_error"),
}

ANALYSIS_FAILED = "Error al analizar la imagen"


def status_for(exc: Exception) -> Tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500, "internal_error"


def error_response(status_code: int, error: str, error_code: str, details: Any = None) -> JSONResponse:
    body = APIError(error=error, error_code=error_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def chart_analysis_error_handler(request: Request, exc: ChartAnalysisError) -> JSONResponse:
    status_code, error_code = status_for(exc)
    if isinstance(exc, InputValidationError):
        logger.info(f"Rejected upload on {request.url.path}: {exc}")
        return error_response(status_code, str(exc), error_code)
    logger.error(f"Analysis failed on {request.url.path}: {exc}")
    return error_response(status_code, ANALYSIS_FAILED, error_code, details=str(exc))


async def upstream_error_handler(request: Request, exc: ModelError) -> JSONResponse:
    status_code, error_code = status_for(exc)
    details: Any = str(exc)
    if exc.status_code is not None or exc.upstream_message:
        details = {
            "message": str(exc),
            "upstream_status": exc.status_code,
            "upstream_message": exc.upstream_message,
        }
    return error_response(status_code, ANALYSIS_FAILED, error_code, details=details)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Solicitud inválida", "bad_request", details=jsonable_errors(exc))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Not logged here: ServerErrorMiddleware re-raises after sending this
    # response and the server logs the traceback once.
    return error_response(500, "Error del servidor", "internal_error", details=str(exc))


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChartAnalysisError, chart_analysis_error_handler)
    app.add_exception_handler(ModelError, upstream_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
