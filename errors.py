"""
Error taxonomy for the API and the handlers that turn it into the JSON envelope
{success: false, error, message, statusCode}.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    error_code = "server_error"

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(AppError):
    status_code = 400
    error_code = "bad_request"


class UnauthorizedError(AppError):
    status_code = 401
    error_code = "unauthorized"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "already_exists"


def error_body(status_code, error_code, message, details=None):
    body = {
        "success": False,
        "error": error_code,
        "message": message,
        "statusCode": status_code,
    }
    if details:
        body["details"] = details
    return body


def error_response(status_code, error_code, message, details=None):
    return JSONResponse(status_code=status_code, content=error_body(status_code, error_code, message, details))


# =====================
# HANDLERS
# =====================

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        # loc looks like ("body", "collectedAmount") or ("query", "page")
        key = ".".join(str(part) for part in err.get("loc", ())[1:]) or "request"
        fields[key] = err.get("msg")
    return error_response(400, "validation_error", "Validation failed", {"errors": fields})


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(409, "already_exists", "A record with the same unique value already exists")


async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning("Concurrent update rejected on %s %s", request.method, request.url.path)
    return error_response(409, "conflict", "The record was modified by another request; reload and retry")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error_code = {404: "not_found", 405: "method_not_allowed", 401: "unauthorized"}.get(exc.status_code, "bad_request")
    return error_response(exc.status_code, error_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "server_error", "Internal server error")


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
