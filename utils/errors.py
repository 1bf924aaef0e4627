# utils/errors.py
import logging
from typing import Any, Dict, List, Optional

from bson.errors import InvalidId
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

FieldErrors = List[Dict[str, str]]


class AppError(Exception):
    """Base class for every error that is reported to clients through the envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[FieldErrors] = None,
        status_code: Optional[int] = None,
    ):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []
        super().__init__(self.message)

    def headers(self) -> Optional[Dict[str, str]]:
        return None

    def extra(self) -> Dict[str, Any]:
        return {}


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"


class Conflict(AppError):
    # Duplicate emails stay on 400 for client compatibility, enrollments raise with 409
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Resource already exists"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authorized"

    def headers(self):
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class TooManyRequests(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests, please try again later"

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after

    def headers(self):
        return {"Retry-After": str(self.retry_after)}

    def extra(self):
        return {"retryAfter": self.retry_after}


class FeatureNotImplemented(AppError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    message = "Not implemented"


class InternalError(AppError):
    pass


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    errors: Optional[FieldErrors] = None,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def success_response(
    message: str, data: Any = None, status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _field_errors(raw_errors) -> FieldErrors:
    errors = []
    for error in raw_errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return errors


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("❌ %s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(
        exc.message, exc.status_code, exc.errors, headers=exc.headers(), **exc.extra()
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, _field_errors(exc.errors()))


async def model_validation_handler(request: Request, exc: ValidationError):
    return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, _field_errors(exc.errors()))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    field = next(iter(key_pattern), "Resource")
    return error_response(f"{field} already exists", status.HTTP_400_BAD_REQUEST)


async def invalid_id_handler(request: Request, exc: InvalidId):
    return error_response("Invalid ID format", status.HTTP_400_BAD_REQUEST)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "Route not found"
    return error_response(message, exc.status_code, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
