"""Unit tests for access_service/core/logging_filters.py: secrets redaction."""

import logging

import pytest

from access_service.core.crypto import generate_raw_secret
from access_service.core.logging_filters import (
    SensitiveDataFilter,
    is_secret_field,
    redact_text,
)


def _record(msg, args=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestRedactText:
    def test_plain_text_unchanged(self):
        text = "Generated API key for project 42"
        assert redact_text(text) == text

    def test_redacts_raw_secret(self):
        secret = generate_raw_secret()
        result = redact_text(f"issued {secret} to caller")
        assert secret not in result
        assert "[REDACTED]" in result

    def test_redacts_test_prefix_secret(self):
        secret = generate_raw_secret("sk_test_")
        assert secret not in redact_text(secret)

    def test_redacts_authorization_bearer(self):
        result = redact_text("Authorization: Bearer sk_live_abcdef")
        assert "sk_live_abcdef" not in result
        assert result.startswith("Authorization: ")

    def test_redacts_key_value_pairs(self):
        assert "hunter2" not in redact_text('"password": "hunter2"')
        assert "s3cr3t" not in redact_text("secret=s3cr3t")

    def test_non_sensitive_pairs_unchanged(self):
        text = "status=active usage_count=3"
        assert redact_text(text) == text


@pytest.mark.unit
class TestIsSecretField:
    @pytest.mark.parametrize("key", ["raw_secret", "key_hash", "key_encrypted", "Authorization", "api_key"])
    def test_sensitive(self, key):
        assert is_secret_field(key)

    @pytest.mark.parametrize("key", ["api_key_id", "key_id", "project_id", "error_code"])
    def test_identifiers_are_safe(self, key):
        assert not is_secret_field(key)


@pytest.mark.unit
class TestSensitiveDataFilter:
    def test_never_suppresses(self):
        assert SensitiveDataFilter().filter(_record("hello")) is True

    def test_scrubs_message_and_args(self):
        secret = generate_raw_secret()
        record = _record("key %s used", (secret,))
        SensitiveDataFilter().filter(record)
        assert secret not in record.getMessage()

    def test_scrubs_sensitive_extra_fields(self):
        record = _record("generated", raw_secret="sk_live_" + "a" * 48, api_key_id="key-1")
        SensitiveDataFilter().filter(record)
        assert record.raw_secret == "[REDACTED]"
        assert record.api_key_id == "key-1"

    def test_scrubs_secrets_inside_other_extras(self):
        secret = generate_raw_secret()
        record = _record("failed", detail=f"lookup of {secret} failed")
        SensitiveDataFilter().filter(record)
        assert secret not in record.detail

    def test_attached_handler_redacts_output(self, caplog):
        logger = logging.getLogger("access_service.tests.redaction")
        caplog.handler.addFilter(SensitiveDataFilter())
        secret = generate_raw_secret()
        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("rotated to %s", secret)
        assert secret not in caplog.text

    def test_standard_record_attributes_untouched(self):
        record = _record("plain", project_id="p1")
        pathname = record.pathname
        SensitiveDataFilter().filter(record)
        assert record.pathname == pathname
        assert record.project_id == "p1"

    def test_dict_args(self):
        record = _record("%(raw_secret)s for %(project)s", None)
        record.args = {"raw_secret": "sk_live_" + "c" * 48, "project": "p1"}
        SensitiveDataFilter().filter(record)
        assert record.getMessage() == "[REDACTED] for p1"
