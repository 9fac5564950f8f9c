"""Error taxonomy shared by the catalog, admin, cart and checkout surfaces."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for errors the HTTP layer knows how to render."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Malformed input. Filter coercion recovers from it; mutations surface it."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class BadRequest(StorefrontError):
    """A required field was left empty on an endpoint that answers 400 for it."""

    status_code = status.HTTP_400_BAD_REQUEST


class StoreUnavailable(StorefrontError):
    """The backing store could not be reached or timed out. Retryable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class Unauthorized(StorefrontError):
    """A user-scoped operation was attempted without an identity."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT


class PaymentError(StorefrontError):
    """The payment provider rejected a request or a webhook failed verification."""

    status_code = status.HTTP_400_BAD_REQUEST


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
