"""
Security middleware for Repurpose
Handles CORS, rate limiting, request tracking, and security headers
"""

import logging
import time
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from core.config import settings
from core.logging import performance_logger, security_logger, set_correlation_id

logger = logging.getLogger(__name__)

# Routes that receive large streamed bodies and enforce their own limits
STREAMING_UPLOAD_PATHS = frozenset({"/api/v1/upload-video"})


def get_client_ip(request: Request) -> str:
    """Extract client IP from request headers"""
    # Check for forwarded headers (reverse proxy)
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    # Fall back to direct connection
    if request.client:
        return request.client.host

    return "unknown"


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Middleware for request tracking and logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        request_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        set_correlation_id(request_id)
        start_time = time.time()

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "endpoint": request.url.path,
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(
                f"Request failed: {type(e).__name__}",
                extra={"request_id": request_id, "duration": duration_ms},
                exc_info=True,
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        performance_logger.log_request_duration(
            request.url.path, request.method, duration_ms, response.status_code
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Correlation-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding window rate limiting middleware"""

    def __init__(
        self,
        app: Any,
        requests_per_window: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window

        # Storage for rate limit data: {client_ip: deque of request timestamps}
        self.request_history: Dict[str, Deque[float]] = {}
        self._last_sweep = time.time()

        logger.info(
            f"Rate limiting initialized: {self.requests_per_window} requests per {self.window_seconds}s"
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        # Skip rate limiting for health checks
        if request.url.path == "/api/health":
            return await call_next(request)

        client_ip = get_client_ip(request)
        current_time = time.time()

        if not self._is_request_allowed(client_ip, current_time):
            security_logger.log_rate_limit_exceeded(client_ip, request.url.path)

            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded",
                    "message": f"Maximum {self.requests_per_window} requests per {self.window_seconds} seconds",
                    "retry_after": self.window_seconds,
                },
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Limit": str(self.requests_per_window),
                    "X-RateLimit-Window": str(self.window_seconds),
                },
            )

        response = await call_next(request)

        remaining_requests = self._get_remaining_requests(client_ip, current_time)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_window)
        response.headers["X-RateLimit-Remaining"] = str(remaining_requests)
        response.headers["X-RateLimit-Window"] = str(self.window_seconds)

        return response

    def _prune(self, client_ip: str, current_time: float) -> Deque[float]:
        """Drop timestamps outside the window; clients left with none are forgotten"""
        request_times = self.request_history.get(client_ip, deque())
        cutoff_time = current_time - self.window_seconds
        while request_times and request_times[0] <= cutoff_time:
            request_times.popleft()
        if not request_times:
            self.request_history.pop(client_ip, None)
        return request_times

    def _sweep_idle_clients(self, current_time: float) -> None:
        """Forget every client with no request inside the window, once per window"""
        if current_time - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = current_time
        cutoff_time = current_time - self.window_seconds
        idle = [
            ip
            for ip, times in self.request_history.items()
            if not times or times[-1] <= cutoff_time
        ]
        for ip in idle:
            del self.request_history[ip]

    def _is_request_allowed(self, client_ip: str, current_time: float) -> bool:
        """Check if request is allowed under rate limit"""
        self._sweep_idle_clients(current_time)
        request_times = self._prune(client_ip, current_time)

        if len(request_times) < self.requests_per_window:
            request_times.append(current_time)
            self.request_history[client_ip] = request_times
            return True

        return False

    def _get_remaining_requests(self, client_ip: str, current_time: float) -> int:
        request_times = self._prune(client_ip, current_time)
        return max(0, self.requests_per_window - len(request_times))


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware for adding security headers"""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        response = await call_next(request)

        security_headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
        }

        # Add HTTPS security headers in production
        if settings.secure_cookies:
            security_headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        for header, value in security_headers.items():
            response.headers[header] = value

        return response


def setup_middleware(app: FastAPI) -> None:
    """
    Configure all middleware for the application

    Args:
        app: FastAPI application instance
    """
    from api.validation_middleware import RequestValidationMiddleware

    # Security headers (first, applied to all responses)
    app.add_middleware(SecurityHeadersMiddleware)

    # Request validation; the streaming upload route enforces its own ceiling
    app.add_middleware(
        RequestValidationMiddleware,
        max_request_size=10 * 1024 * 1024,
        max_json_depth=10,
        exempt_paths=STREAMING_UPLOAD_PATHS,
    )

    # Rate limiting (before request processing)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )

    # Request tracking (for logging and debugging)
    app.add_middleware(RequestTrackingMiddleware)

    # CORS (last, to handle preflight requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Correlation-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "Content-Disposition",
        ],
    )

    logger.info("Middleware configuration completed")
    logger.info(f"CORS origins configured: {settings.cors_origins}")
    logger.info(
        f"Rate limiting: {settings.rate_limit_requests} requests per {settings.rate_limit_window}s"
    )
