"""
Structured Logging Configuration for Repurpose
Provides consistent logging format with correlation IDs and security events
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from core.config import settings

# Context variable for request correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_EXTRA_FIELDS = (
    "user_id",
    "endpoint",
    "method",
    "status_code",
    "security_event",
    "error_details",
    "request_id",
    "file_size",
)


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        current_correlation_id = correlation_id.get()
        if current_correlation_id:
            log_entry["correlation_id"] = current_correlation_id

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if hasattr(record, "duration"):
            log_entry["duration_ms"] = record.duration

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, default=str)


class SecurityLogger:
    """Specialized logger for security events"""

    def __init__(self) -> None:
        self.logger = logging.getLogger("repurpose.security")

    def log_authentication_attempt(self, email: str, success: bool, ip_address: str) -> None:
        """Log authentication attempts"""
        self.logger.info(
            f"Authentication {'successful' if success else 'failed'} for {email}",
            extra={
                "security_event": "authentication",
                "email": email,
                "success": success,
                "ip_address": ip_address,
            },
        )

    def log_credential_decrypt_failure(self, reason: str) -> None:
        """Log a stored credential that could not be decrypted (never the value)"""
        self.logger.warning(
            f"Stored credential could not be decrypted: {reason}",
            extra={"security_event": "credential_decrypt_failure", "error_details": reason},
        )

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str) -> None:
        """Log rate limit violations"""
        self.logger.warning(
            f"Rate limit exceeded from {ip_address} for endpoint {endpoint}",
            extra={
                "security_event": "rate_limit_exceeded",
                "ip_address": ip_address,
                "endpoint": endpoint,
            },
        )


class PerformanceLogger:
    """Specialized logger for performance monitoring"""

    def __init__(self) -> None:
        self.logger = logging.getLogger("repurpose.performance")

    def log_request_duration(
        self, endpoint: str, method: str, duration_ms: float, status_code: int
    ) -> None:
        """Log API and outbound request performance"""
        self.logger.info(
            f"{method} {endpoint} completed in {duration_ms:.2f}ms with status {status_code}",
            extra={
                "endpoint": endpoint,
                "method": method,
                "duration": duration_ms,
                "status_code": status_code,
            },
        )

    def log_upload_relay_duration(self, stage: str, file_size_mb: float, duration_ms: float) -> None:
        """Log upload receive/forward performance"""
        self.logger.info(
            f"Upload {stage} ({file_size_mb:.2f}MB) completed in {duration_ms:.2f}ms",
            extra={
                "operation": stage,
                "file_size_mb": file_size_mb,
                "duration": duration_ms,
            },
        )


def setup_logging() -> None:
    """Configure structured logging for the application"""

    if settings.debug:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    else:
        formatter = StructuredFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    loggers_config = {
        "repurpose": settings.log_level.upper(),
        "repurpose.security": "INFO",
        "repurpose.performance": "INFO",
        "uvicorn.access": "INFO" if settings.debug else "WARNING",
        "uvicorn.error": "INFO",
        "httpx": "WARNING",  # Request lines would include presigned URLs
        "botocore": "WARNING",
        "sqlalchemy.engine": "WARNING",
        "sqlalchemy.pool": "WARNING",
    }

    for logger_name, level in loggers_config.items():
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, level))
        logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance"""
    return logging.getLogger(f"repurpose.{name}")


def set_correlation_id(request_id: Optional[str] = None) -> str:
    """Set correlation ID for request tracking"""
    if request_id is None:
        request_id = str(uuid.uuid4())
    correlation_id.set(request_id)
    return request_id


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID"""
    return correlation_id.get()


# Initialize specialized loggers
security_logger = SecurityLogger()
performance_logger = PerformanceLogger()

__all__ = [
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "security_logger",
    "performance_logger",
]
