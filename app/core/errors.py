"""
Application error taxonomy and central exception handlers.

Services raise AppError subclasses; the handlers registered here turn them
(and anything unexpected) into JSON responses of the form
{"detail": message, "code": code}.
"""
import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core import config
from app.core.logging_config import sanitize_log_data

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base error with an HTTP status code and a machine-readable code."""
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Request failed", status_code: int = None, code: str = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class ExpiredError(AppError):
    status_code = 410
    code = "EXPIRED"


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "FILE_SIZE_ERROR"


class InternalError(AppError):
    status_code = 500
    code = "INTERNAL_ERROR"


def infer_status_code(message: str) -> int:
    """Guess an HTTP status from an error message when no code was set."""
    lower = message.lower()
    if "invalid email or password" in lower:
        return 401
    if "invalid otp" in lower:
        return 400
    if "expired" in lower:
        return 410
    if "already registered" in lower:
        return 409
    if "not found" in lower:
        return 404
    if "forbidden" in lower or "access" in lower:
        return 403
    if "validation" in lower:
        return 400
    return 500


def _code_for_status(status_code: int) -> str:
    return {
        400: ValidationError.code,
        401: UnauthorizedError.code,
        403: ForbiddenError.code,
        404: NotFoundError.code,
        409: ConflictError.code,
        410: ExpiredError.code,
        413: PayloadTooLargeError.code,
    }.get(status_code, InternalError.code)


def public_message(status_code: int, message: str) -> str:
    """
    Message safe to return to the client.

    5xx messages are always masked. 4xx messages are only exposed outside
    production; in production the HTTP reason phrase is returned instead.
    """
    if status_code >= 500:
        return "Internal server error"
    if config.IS_PRODUCTION:
        try:
            return HTTPStatus(status_code).phrase
        except ValueError:
            return "Request failed"
    return message or "Request failed"


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": public_message(status_code, message), "code": code},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message} "
        f"query={sanitize_log_data(dict(request.query_params))}"
    )
    return _error_response(exc.status_code, exc.message, exc.code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Validation error: {location} {first.get('msg', '')}".strip()
    else:
        message = "Validation error: invalid request payload"
    logger.warning(f"Request validation failed on {request.method} {request.url.path}: {message}")
    return _error_response(400, message, ValidationError.code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = infer_status_code(str(exc))
    if status_code >= 500:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    else:
        logger.warning(f"Error on {request.method} {request.url.path}: {exc}")
    return _error_response(status_code, str(exc), _code_for_status(status_code))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
