"""
Uniform error envelope: {"error": <kind>} with the kind's HTTP status.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ppvgate.ppv.errors import ErrorKind, PpvError

logger = logging.getLogger(__name__)

_HTTP_KIND = {
    401: ErrorKind.UNAUTHENTICATED,
    403: ErrorKind.ACCESS_DENIED,
    404: ErrorKind.NOT_FOUND,
}


def error_response(kind: ErrorKind, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind.value})


async def ppv_error_handler(request: Request, exc: PpvError) -> JSONResponse:
    if exc.kind == ErrorKind.UNEXPECTED:
        logger.error("request_failed", extra={"path": request.url.path, "error": str(exc)})
    response = error_response(exc.kind, exc.http_status)
    if exc.retryable:
        response.headers["Retry-After"] = "5"
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ErrorKind.VALIDATION, 400)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = _HTTP_KIND.get(exc.status_code)
    if kind is None:
        kind = ErrorKind.VALIDATION if exc.status_code < 500 else ErrorKind.UNEXPECTED
    return error_response(kind, exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
    return error_response(ErrorKind.UNEXPECTED, 500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PpvError, ppv_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
