"""
Unit tests for structured logging utility (vlossom_client/utils/logger.py)

Tests covering:
- JSON log formatting with required fields
- E-mail and token masking
- Log operation decorator
"""

import io
import json
import logging

import pytest

from vlossom_client.config.settings import SecretRedactionFilter
from vlossom_client.utils.logger import (
    StructuredLogger,
    add_log_filter,
    get_logger,
    log_operation,
    mask_email,
    mask_token,
    remove_log_filter,
)


class TestMaskEmail:
    def test_keeps_first_character_and_domain(self):
        assert mask_email("thandi@example.com") == "t*****@example.com"

    def test_single_character_local_part(self):
        assert mask_email("a@b.co") == "a@b.co"

    def test_empty_and_none(self):
        assert mask_email("") == "unknown"
        assert mask_email(None) == "unknown"

    def test_invalid_addresses(self):
        assert mask_email("not-an-email") == "invalid"
        assert mask_email("@example.com") == "invalid"


class TestMaskToken:
    def test_leaves_last_four_visible(self):
        assert mask_token("a1b2c3d4e5f6") == "********e5f6"

    def test_short_token_fully_masked(self):
        assert mask_token("abc") == "***"

    def test_custom_visible_count(self):
        assert mask_token("0xdeadbeef", visible=2) == "********ef"

    def test_missing_token(self):
        assert mask_token(None) == "none"


class TestStructuredLogger:
    def test_format_log_includes_required_fields(self):
        logger = StructuredLogger("test.format")
        entry = json.loads(
            logger._format_log(
                "INFO",
                "Booking cancelled",
                operation="cancel_booking",
                context={"booking_id": "b-1"},
                duration_ms=12.3456,
            )
        )
        assert entry["level"] == "INFO"
        assert entry["message"] == "Booking cancelled"
        assert entry["operation"] == "cancel_booking"
        assert entry["context"] == {"booking_id": "b-1"}
        assert entry["duration_ms"] == 12.35
        assert entry["timestamp"].endswith("Z")

    def test_format_log_omits_empty_fields(self):
        logger = StructuredLogger("test.minimal")
        entry = json.loads(logger._format_log("DEBUG", "hello"))
        assert set(entry) == {"timestamp", "level", "message"}

    def test_error_field_present(self):
        logger = StructuredLogger("test.error")
        entry = json.loads(logger._format_log("ERROR", "failed", error="boom"))
        assert entry["error"] == "boom"

    def test_single_handler_per_logger(self):
        get_logger("test.handlers")
        get_logger("test.handlers")
        assert len(logging.getLogger("test.handlers").handlers) == 1

    def test_warning_emits_json(self, caplog):
        logger = get_logger("test.emit")
        logger.logger.propagate = True
        try:
            with caplog.at_level(logging.WARNING, logger="test.emit"):
                logger.warning("Retrying", operation="query_fetch", context={"attempt": 1})
        finally:
            logger.logger.propagate = False
        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["level"] == "WARNING"
        assert entry["context"] == {"attempt": 1}


class TestLogOperation:
    def test_returns_result_and_logs_completion(self, caplog):
        @log_operation("cancel_booking")
        def cancel(booking_id=None):
            return {"id": booking_id}

        logger = get_logger(__name__).logger
        logger.propagate = True
        with caplog.at_level(logging.INFO, logger=__name__):
            assert cancel(booking_id="b-1") == {"id": "b-1"}

        messages = [json.loads(r.getMessage()) for r in caplog.records if r.name == __name__]
        completed = [m for m in messages if m["message"] == "Completed cancel_booking"]
        assert completed
        assert completed[0]["context"]["booking_id"] == "b-1"
        assert "duration_ms" in completed[0]

    def test_reraises_and_masks_email(self, caplog):
        @log_operation("login")
        def login(email=None):
            raise ValueError("bad credentials")

        logger = get_logger(__name__).logger
        logger.propagate = True
        with caplog.at_level(logging.ERROR, logger=__name__):
            with pytest.raises(ValueError):
                login(email="thandi@example.com")

        failed = [json.loads(r.getMessage()) for r in caplog.records if r.levelno == logging.ERROR]
        assert failed[-1]["context"]["email_masked"] == "t*****@example.com"
        assert failed[-1]["error"] == "bad credentials"


class TestSharedFilters:
    def test_redacts_output_of_existing_and_new_loggers(self):
        existing = get_logger("test.filters.existing").logger
        existing.handlers[0].setStream(io.StringIO())
        redaction = SecretRedactionFilter({"password": "hunter22"})

        add_log_filter(redaction)
        try:
            later = get_logger("test.filters.later").logger
            later.handlers[0].setStream(io.StringIO())
            for log in (existing, later):
                log.info("login with hunter22")
                out = log.handlers[0].stream.getvalue()
                assert "hunter22" not in out
                assert "***REDACTED***" in out
        finally:
            remove_log_filter(redaction)

        existing.info("login with hunter22")
        assert "hunter22" in existing.handlers[0].stream.getvalue()

    def test_adding_twice_is_a_noop(self):
        log = get_logger("test.filters.twice").logger
        redaction = SecretRedactionFilter()
        add_log_filter(redaction)
        add_log_filter(redaction)
        try:
            assert log.handlers[0].filters.count(redaction) == 1
        finally:
            remove_log_filter(redaction)
