# sellz_auth/errors.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went very wrong!"


class AppError(Exception):
    """An error that maps straight onto an HTTP response.

    Operational errors (bad input, bad credentials, missing records, a failed
    email) carry a message that is safe to show to the caller. Anything raised
    with ``is_operational=False`` is a programming error: it is logged and the
    caller only sees a generic message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        is_operational: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational


def error_body(status_code: int, message: str) -> dict:
    return {
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    if exc.is_operational:
        message = exc.message
    else:
        logger.error("Non-operational error on %s: %s", request.url.path, exc.message)
        message = GENERIC_ERROR_MESSAGE
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field_name = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field_name}: {first.get('msg')}" if field_name else first.get("msg")
    else:
        message = "Invalid input data."
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(status.HTTP_400_BAD_REQUEST, message),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
