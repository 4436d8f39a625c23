"""Translate exceptions into the response envelope."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from metamorfose.exceptions import GatewayError, ValidationError
from metamorfose.schemas import OperationResult

logger = logging.getLogger(__name__)


def envelope_response(status_code: int, result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("Invalid argument on %s: %s", request.url.path, exc)
    return envelope_response(
        status.HTTP_400_BAD_REQUEST,
        OperationResult.error(f"Invalid parameter: {exc}", operation_type="VALIDATION_ERROR"),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Request validation failed on %s: %s", request.url.path, exc.errors())
    fields = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))} - {err.get('msg')}" for err in exc.errors()
    )
    return envelope_response(
        status.HTTP_400_BAD_REQUEST,
        OperationResult.error(f"Validation error: {fields}", operation_type="VALIDATION_ERROR"),
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Database error on %s: %s", request.url.path, exc, exc_info=exc)
    return envelope_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        OperationResult.error(f"Database error: {exc}", operation_type="DATABASE_ERROR"),
    )


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Must stay synchronous: SlowAPIMiddleware ignores coroutine handlers."""
    logger.warning("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    return envelope_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        OperationResult.error(f"Rate limit exceeded: {exc.detail}", operation_type="RATE_LIMITED"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Internal server error on %s", request.url.path, exc_info=exc)
    return envelope_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        OperationResult.error("Internal server error", operation_type="INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
