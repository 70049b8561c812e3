"""
API Middleware

- Request logging: request id bound into every event a handler logs,
  health probes at debug level, slow requests as warnings
- Response headers: security headers, and no caching of state exports
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = structlog.get_logger(__name__)

QUIET_PATH_PREFIX = "/api/v1/health"
NO_STORE_PATHS = ("/api/v1/backup",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request once it completes, with its duration"""
    
    def __init__(self, app: ASGIApp, slow_request_ms: float = 2000.0):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        path = request.url.path
        
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            
            fields = {
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
            if path.startswith(QUIET_PATH_PREFIX):
                logger.debug("Request completed", **fields)
            elif duration_ms > self.slow_request_ms:
                logger.warning("Slow request", **fields)
            else:
                logger.info("Request completed", **fields)
        
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Security headers on every response; backups are never cached"""
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path in NO_STORE_PATHS:
            response.headers["Cache-Control"] = "no-store"
        
        return response
