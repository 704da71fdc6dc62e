"""
Global exception handlers and custom exception classes.
"""
from typing import Any, Dict, List, Optional, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from .core.responses import error_response

# Set up logging
logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for application-specific exceptions.

    Business rule violations raised below the transport layer are all
    subclasses of this and are rendered into the error envelope.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal Server Error"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Optional[Union[str, List[Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.headers = headers
        super().__init__(self.detail)


class ValidationError(AppException):
    """Malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation error"


class NotFoundException(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class RateLimitedException(AppException):
    """Too many requests from one client within the window."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests, please try again later."

    def __init__(self, detail: Optional[str] = None, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__(detail, headers={"Retry-After": str(retry_after)})


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def _user_id(request: Request) -> Optional[str]:
    identity = getattr(request.state, "identity", None)
    return getattr(identity, "user_id", None)


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    if exc.status_code >= 500:
        logger.error(f"Application error on {request.url.path}: {exc.detail}")
    else:
        logger.info(f"Request rejected on {request.url.path} ({exc.status_code}): {exc.detail}")
    return error_response(
        exc.status_code,
        exc.detail,
        errors=exc.errors,
        request_id=_request_id(request),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    logger.info(f"Validation error on {request.url.path}: {messages}")
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation error",
        errors=messages,
        request_id=_request_id(request),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework HTTP errors (404 route, 405 method) as envelopes."""
    return error_response(
        exc.status_code,
        str(exc.detail),
        request_id=_request_id(request),
        headers=getattr(exc, "headers", None),
    )


def unhandled_exception_handler(show_details: bool):
    """
    Build the catch-all handler.

    Unexpected failures (store unavailable, hashing failure) are logged with
    request context; the client only sees the exception text in development.
    """
    async def handler(request: Request, exc: Exception):
        logger.exception(
            f"Unhandled error: request_id={_request_id(request)} path={request.url.path} "
            f"user_id={_user_id(request)}"
        )
        message = str(exc) if show_details else "Internal Server Error"
        request_id = _request_id(request)
        # Runs outside the request logging middleware, so the id is stamped here
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message,
            request_id=request_id,
            headers={"X-Request-ID": request_id} if request_id else None,
        )
    return handler


# Register exception handlers with FastAPI app
def register_exception_handlers(app, show_details: bool = False):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
        show_details: Include exception text in 500 responses (development only)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler(show_details))
