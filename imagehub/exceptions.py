import logging
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base for every error the core reports upward."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed, caller-fixable input."""

    status_code = 400


class TransformationError(ValidationError):
    """A pipeline stage rejected its input."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class PayloadTooLargeError(ValidationError):
    """Upload body above the configured size cap."""

    status_code = 413


class NotFoundError(ServiceError):
    status_code = 404


class AccessDeniedError(ServiceError):
    status_code = 403


class StorageFailureError(ServiceError):
    """Store or Catalog I/O failed."""

    status_code = 500


class ConflictError(ServiceError):
    status_code = 409


class AuthenticationError(ServiceError):
    status_code = 401


def create_error_response(error_message: str) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Translate core errors into transport status codes"""
    if isinstance(exc, StorageFailureError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # HTTPBearer answers 403 for a missing header; report it as 401
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required")
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail),
        headers=getattr(exc, "headers", None),
    )
