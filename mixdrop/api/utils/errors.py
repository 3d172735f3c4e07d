"""
Taxonomie des erreurs de l'API et traduction en réponses `{"error": ...}`.
"""
import math
from dataclasses import dataclass
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mixdrop.api.utils.constants import (
    ERROR_FORBIDDEN,
    ERROR_NOT_FOUND,
    ERROR_RATE_LIMIT_EXCEEDED,
    ERROR_SERVER,
    ERROR_UNAUTHORIZED,
)
from mixdrop.api.utils.logging import logger
from mixdrop.api.utils.request_context import get_request_id


@dataclass
class FieldViolation:
    field: str
    message: str
    status_code: int = status.HTTP_400_BAD_REQUEST


class ApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = ERROR_SERVER

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = ERROR_UNAUTHORIZED


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = ERROR_FORBIDDEN


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = ERROR_NOT_FOUND


class RateLimitExceededError(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = ERROR_RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = max(0, int(math.ceil(retry_after)))
        super().__init__(message)


class ValidationFailedError(ApiError):
    """Regroupe toutes les violations constatées ; le statut suit la première."""

    def __init__(self, violations: List[FieldViolation]):
        self.violations = list(violations)
        self.status_code = self.violations[0].status_code if self.violations else status.HTTP_400_BAD_REQUEST
        super().__init__("; ".join(v.message for v in self.violations) or "Invalid input")


def error_response(status_code: int, message: str, headers: Optional[dict] = None, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra}, headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, RateLimitExceededError):
        return error_response(
            exc.status_code,
            exc.message,
            headers={"Retry-After": str(exc.retry_after)},
            retryAfter=exc.retry_after,
        )
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else ERROR_SERVER
    if exc.status_code == status.HTTP_404_NOT_FOUND and not isinstance(exc.detail, str):
        message = ERROR_NOT_FOUND
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form"))
        message = f"Invalid input: {location} {first.get('msg', '')}".strip()
    else:
        message = "Invalid input"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"[API] Erreur inattendue sur {request.method} {request.url.path} (request_id={get_request_id()}): {exc}",
        exc_info=exc,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ERROR_SERVER)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "FieldViolation",
    "ApiError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitExceededError",
    "ValidationFailedError",
    "error_response",
    "register_exception_handlers",
]
