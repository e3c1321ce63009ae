import json
import logging
import socket
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

APPLICATION_NAME = "ms-portfolio-bs"

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the request context attached when there is one."""

    def __init__(self, application: str = APPLICATION_NAME):
        super().__init__()
        self.application = application
        self.server = socket.gethostname()

    def _request_context(self) -> Dict[str, str]:
        context = {"request_id": request_id_var.get(), "correlation_id": correlation_id_var.get()}
        return {key: value for key, value in context.items() if value}

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "msg": record.getMessage(),
            "application": self.application,
            "server": self.server,
            "logger": record.name,
        }
        entry.update(self._request_context())
        entry.update(getattr(record, "extra_fields", {}))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class StructuredLogger:
    """Logger taking structured fields as keyword arguments."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, exc_info: bool = False, **extra_fields):
        if self.logger.isEnabledFor(level):
            record = self.logger.makeRecord(
                self.logger.name, level, "", 0, msg, (),
                sys.exc_info() if exc_info else None
            )
            record.extra_fields = extra_fields
            self.logger.handle(record)

    def info(self, msg: str, **extra_fields):
        self._log(logging.INFO, msg, **extra_fields)

    def warning(self, msg: str, **extra_fields):
        self._log(logging.WARNING, msg, **extra_fields)

    def error(self, msg: str, exc_info: bool = False, **extra_fields):
        self._log(logging.ERROR, msg, exc_info=exc_info, **extra_fields)

    def debug(self, msg: str, **extra_fields):
        self._log(logging.DEBUG, msg, **extra_fields)

    def critical(self, msg: str, exc_info: bool = False, **extra_fields):
        self._log(logging.CRITICAL, msg, exc_info=exc_info, **extra_fields)


def client_ip(request: Request) -> str:
    """Caller address, preferring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers["x-real-ip"]
    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Per-request logging with request and correlation IDs.

    A fresh request ID is minted for every request. The correlation ID is the
    caller's ``x-correlation-id`` header, falling back to the request ID. Both
    are visible to every log line written while the request runs and are
    returned as response headers.
    """

    slow_request_seconds = 1.0

    def __init__(self, app, logger: Optional[StructuredLogger] = None):
        super().__init__(app)
        self.logger = logger or StructuredLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        correlation_id = request.headers.get("x-correlation-id", request_id)
        request_id_var.set(request_id)
        correlation_id_var.set(correlation_id)
        try:
            response = await self._logged_call(request, call_next)
        finally:
            request_id_var.set(None)
            correlation_id_var.set(None)

        response.headers["x-request-id"] = request_id
        response.headers["x-correlation-id"] = correlation_id
        return response

    async def _logged_call(self, request: Request, call_next) -> Response:
        fields = {"method": request.method, "path": request.url.path}
        self.logger.debug("Request received", operation="request", ip=client_ip(request), **fields)

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "Request error",
                operation="request_error",
                duration_ms=self._elapsed_ms(started),
                error=str(e),
                **fields
            )
            raise

        duration_ms = self._elapsed_ms(started)
        slow = duration_ms > self.slow_request_seconds * 1000
        log = self.logger.warning if slow else self.logger.info
        log(
            "Slow request" if slow else "Request completed",
            operation="slow_request" if slow else "response",
            status=response.status_code,
            duration_ms=duration_ms,
            **fields
        )
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)


def setup_logging(log_level: str = "INFO", application: str = APPLICATION_NAME) -> StructuredLogger:
    """
    Install the JSON handler on the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(application=application))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return StructuredLogger(application)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
