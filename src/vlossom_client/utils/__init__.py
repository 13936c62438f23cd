"""Shared helpers: structured logging, timestamps and money formatting."""

from .logger import StructuredLogger, get_logger, log_operation, mask_email, mask_token
from .money import format_duration, format_price, round_half_up, to_cents
from .timezone import now_utc, parse_timestamp, to_iso

__all__ = [
    "StructuredLogger",
    "get_logger",
    "log_operation",
    "mask_email",
    "mask_token",
    "format_duration",
    "format_price",
    "round_half_up",
    "to_cents",
    "now_utc",
    "parse_timestamp",
    "to_iso",
]
