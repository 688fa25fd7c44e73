"""
storefront/core/errors.py
Uygulama hata sınıfları ve FastAPI exception handler'ları.

Every handled error leaves the API as `{"message": "..."}` with the HTTP status of its kind.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class OutOfStock(ValidationError):
    default_message = "Product is out of stock"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Admin access required"


class PaymentProviderError(AppError):
    default_message = "Failed to create payment intent"


class SignatureVerificationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Webhook signature verification failed"


class ServerError(AppError):
    pass


def _message_from_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg


async def _app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, ServerError):
        logger.error("server_error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": ServerError.default_message})
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": _message_from_validation(exc)},
    )


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": ServerError.default_message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
