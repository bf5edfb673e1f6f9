# beatmarket/app/exceptions.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class BeatMarketError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(BeatMarketError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"


class WebhookSignatureError(AuthenticationError):
    default_detail = "Invalid webhook signature"


class PermissionDeniedError(BeatMarketError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class NotFoundError(BeatMarketError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationFailedError(BeatMarketError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class GoneError(BeatMarketError):
    """The resource existed but access to it has expired."""
    status_code = status.HTTP_410_GONE
    default_detail = "Download link has expired"


class QuotaExceededError(BeatMarketError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Download limit reached"


class IntentParseError(BeatMarketError):
    """Checkout session metadata could not be turned into a purchase intent."""
    default_detail = "Malformed checkout session metadata"


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(BeatMarketError)
    async def beatmarket_error_handler(request: Request, exc: BeatMarketError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return app
