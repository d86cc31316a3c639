"""
Logging setup and HTTP request logging for the hostel API.
"""
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Set

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("hostel")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Paths that are polled often and not worth a log line
SKIP_LOGGING_PATHS: Set[str] = {"/", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(getattr(h, "_hostel_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler._hostel_handler = True
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"
    ))
    root.addHandler(handler)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        token = request_id_var.set(request_id)
        path = request.url.path
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error("%s %s raised after %.2fms", request.method, path, duration_ms, exc_info=True)
            raise
        else:
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Request-ID"] = request_id
            if path not in SKIP_LOGGING_PATHS:
                if response.status_code >= 500:
                    log = logger.error
                elif response.status_code >= 400:
                    log = logger.warning
                else:
                    log = logger.info
                log("%s %s - %s (%.2fms)", request.method, path, response.status_code, duration_ms)
            return response
        finally:
            request_id_var.reset(token)
