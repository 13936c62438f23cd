"""
Structured logging utility for the Vlossom client.

Emits one JSON document per log line with masking helpers for e-mail
addresses and tokens, context injection, and operation timing.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from functools import wraps

# Filters applied to every structured logger handler, including ones made later
_shared_filters: List[logging.Filter] = []
_handlers: List[logging.Handler] = []


def mask_email(email: Optional[str]) -> str:
    """
    Mask an e-mail address so it can be logged.

    Keeps the first character of the local part and the full domain.

    Example:
        >>> mask_email("thandi@example.com")
        "t*****@example.com"
    """
    if not email:
        return "unknown"

    if "@" not in email:
        return "invalid"

    local, domain = email.split("@", 1)
    if not local or not domain:
        return "invalid"

    return f"{local[0]}{'*' * (len(local) - 1)}@{domain}"


def mask_token(token: Optional[str], visible: int = 4) -> str:
    """
    Mask a CSRF token or transaction hash, leaving the last characters visible.

    Example:
        >>> mask_token("a1b2c3d4e5f6")
        "********e5f6"
    """
    if not token:
        return "none"

    if len(token) <= visible:
        return "*" * len(token)

    return f"{'*' * (len(token) - visible)}{token[-visible:]}"


class StructuredLogger:
    """
    JSON-formatted logger with context injection and operation timing.

    Every record is a single JSON object so client logs can be shipped to
    any line-oriented collector and parsed without regexes.
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__ from calling module)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(logging.INFO)
            handler.setFormatter(logging.Formatter("%(message)s"))
            for log_filter in _shared_filters:
                handler.addFilter(log_filter)
            _handlers.append(handler)
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def _format_log(
        self,
        level: str,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> str:
        """
        Format log entry as JSON.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR)
            message: Human-readable message
            operation: Operation name (e.g., "cancel_booking", "refresh_session")
            context: Context dict with booking_id, property_id, etc.
            duration_ms: Operation duration in milliseconds
            error: Error message if applicable

        Returns:
            JSON-formatted log string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "message": message,
        }

        if operation:
            log_entry["operation"] = operation

        if context:
            log_entry["context"] = context

        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)

        if error:
            log_entry["error"] = error

        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def debug(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Log debug message."""
        self.logger.debug(self._format_log("DEBUG", message, operation, context))

    def info(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log info message."""
        self.logger.info(self._format_log("INFO", message, operation, context, duration_ms))

    def warning(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        """Log warning message."""
        self.logger.warning(
            self._format_log("WARNING", message, operation, context, error=error)
        )

    def error(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log error message."""
        self.logger.error(
            self._format_log("ERROR", message, operation, context, duration_ms, error)
        )


def log_operation(operation_name: str):
    """
    Decorator that logs start, duration and outcome of an API operation.

    Usage:
        @log_operation("cancel_booking")
        def cancel_booking(self, booking_id, reason=None):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)

            context: Dict[str, Any] = {"function": func.__name__}
            for key in ("booking_id", "property_id", "chair_id", "request_id", "dispute_id"):
                if key in kwargs:
                    context[key] = kwargs[key]
            if "email" in kwargs:
                context["email_masked"] = mask_email(kwargs["email"])

            logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {operation_name}",
                    operation=operation_name,
                    context=context,
                    error=str(e),
                    duration_ms=(time.time() - start_time) * 1000,
                )
                raise

            logger.info(
                f"Completed {operation_name}",
                operation=operation_name,
                context=context,
                duration_ms=(time.time() - start_time) * 1000,
            )
            return result

        return wrapper

    return decorator


def get_logger(name: str) -> StructuredLogger:
    """
    Factory function to get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)


def add_log_filter(log_filter: logging.Filter) -> None:
    """
    Apply a filter to the output of every structured logger.

    Structured loggers do not propagate to the root logger, so filters must
    sit on their handlers. Loggers created afterwards pick the filter up too.
    """
    if log_filter in _shared_filters:
        return
    _shared_filters.append(log_filter)
    for handler in _handlers:
        handler.addFilter(log_filter)


def remove_log_filter(log_filter: logging.Filter) -> None:
    if log_filter in _shared_filters:
        _shared_filters.remove(log_filter)
    for handler in _handlers:
        handler.removeFilter(log_filter)
