from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError, HTTPException

from slowapi.errors import RateLimitExceeded

from api.utils.logger import logger
from api.utils.exceptions import BaseAPIException


async def base_api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions and log them."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "failure",
            "status_code": exc.status_code,
            "message": exc.detail,
            "error": {"code": exc.code},
        },
        headers=exc.headers,
    )


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Handle validation errors and log them."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"errors": errors},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "failure",
            "status_code": 422,
            "message": "Validation error",
            "error": {"code": "request_validation_error", "details": errors},
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPException and log them."""
    logger.error(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "failure",
            "status_code": exc.status_code,
            "message": exc.detail,
            "error": {"code": "http_error"},
        },
        headers=exc.headers,
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions and log them."""
    logger.exception(
        f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "failure",
            "status_code": 500,
            "message": "Internal server error",
            "error": {"code": "internal_error"},
        },
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Too many AI requests from one client."""
    logger.warning(f"Rate limit hit on {request.method} {request.url.path}: {exc.detail}")
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "status": "failure",
            "status_code": 429,
            "message": f"Rate limit exceeded: {exc.detail}",
            "error": {"code": "rate_limited"},
        },
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
