"""
API middleware for CareBoard.

Provides:
- Rate limiting
- Identity header extraction
- Request logging
- Error handling
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response, HTTPException
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.core.errors import CareBoardError, RecordNotFoundError
from app.models.schemas import ErrorResponse
from app.utils.logger import bind_user_context, get_logger

logger = get_logger("middleware")


# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)


def error_response(
    status_code: int,
    error: str,
    message: str,
    error_code: str
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, error_code=error_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def get_identity_email(request: Request) -> Optional[str]:
    """Extract the authenticated email forwarded by the identity gateway."""
    email = request.headers.get(settings.identity_header, "").strip()
    return email or None


class IdentityMiddleware(BaseHTTPMiddleware):
    """
    Stores the authenticated user's email on the request state and binds
    it to the log context of the request.

    Authentication itself happens at the identity provider; requests
    without the header are anonymous.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        request.state.user_email = get_identity_email(request)
        bind_user_context(request.state.user_email)
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Logs:
    - Request method and path
    - Response status code
    - Processing time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = get_remote_address(request)

        logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                process_time_ms=int(process_time * 1000)
            )

            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                process_time_ms=int(process_time * 1000)
            )
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except RecordNotFoundError as e:
            logger.warning("Record not found", error=e.message)
            return error_response(404, "Not Found", e.message, "NOT_FOUND")

        except CareBoardError as e:
            logger.warning("Request rejected", error=e.message)
            return error_response(400, "Bad Request", e.message, "BAD_REQUEST")

        except Exception as e:
            logger.error("Unhandled exception", error=str(e), exc_info=True)
            return error_response(
                500,
                "Internal Server Error",
                "An unexpected error occurred. Please try again.",
                "INTERNAL_ERROR"
            )


def setup_rate_limiting(app) -> None:
    """Setup rate limiting on the application."""
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return error_response(
            429,
            "Rate Limit Exceeded",
            "Too many requests. Please wait before trying again.",
            "RATE_LIMIT_EXCEEDED"
        )
