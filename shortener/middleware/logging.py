"""
Logging Middleware for Request/Response Logging

Every request is logged once it completes with:
- Request method and path
- Response status code and size
- Processing time
- Client IP address

The processing time is also returned in the X-Process-Time header.
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("shortener.access")


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Prefers X-Real-IP, then the first X-Forwarded-For hop, then the socket peer.
    """
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            process_time = time.perf_counter() - start_time
            logger.error(
                f"{request.method} {request.url.path} failed after "
                f"{process_time*1000:.2f}ms IP:{client_ip}",
                exc_info=True
            )
            raise

        process_time = time.perf_counter() - start_time
        size = response.headers.get("content-length", "-")

        # Format: METHOD PATH STATUS_CODE SIZE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {size}B {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


def add_logging_middleware(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)
