"""Redaction of API key secrets and credentials in log records.

Two things are scrubbed before a record reaches a handler:

* text (the message, its args, and string ``extra`` values) is searched for raw
  ``sk_<env>_<hex>`` secrets, Bearer tokens and ``secret=...`` style pairs;
* ``extra`` fields whose name marks them as secret material (``raw_secret``,
  ``key_hash``, ``key_encrypted``...) are replaced outright.

Identifiers such as ``api_key_id`` are left alone so that operational logs can
still correlate events with rows.
"""

import logging
import re
from typing import Any

REDACTED = "[REDACTED]"

SECRET_FIELD_MARKERS: tuple[str, ...] = (
    "secret",
    "key_hash",
    "key_encrypted",
    "ciphertext",
    "password",
    "token",
    "authorization",
    "bearer",
    "api_key",
    "apikey",
)

IDENTIFIER_FIELDS: frozenset[str] = frozenset({"api_key_id", "key_id"})

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

# (pattern, keeps_label): labelled patterns keep group 1 and drop the rest
_TEXT_RULES: tuple[tuple[re.Pattern, bool], ...] = (
    (re.compile(r"\bsk_[a-z]+_[0-9a-fA-F]{16,}\b"), False),
    (re.compile(r"(Authorization:\s*)\S+(?:\s+\S+)?", re.IGNORECASE), True),
    (re.compile(r"(\bBearer\s+)\S+", re.IGNORECASE), True),
    (
        re.compile(
            r'("?(?:api_key|apikey|raw_secret|secret|password|token)"?\s*[=:]\s*["\']?)[^"\'&\s,}{]+',
            re.IGNORECASE,
        ),
        True,
    ),
)


def redact_text(text: str) -> str:
    """Return ``text`` with every recognised secret replaced by ``[REDACTED]``."""
    for pattern, keeps_label in _TEXT_RULES:
        if keeps_label:
            text = pattern.sub(lambda m: m.group(1) + REDACTED, text)
        else:
            text = pattern.sub(REDACTED, text)
    return text


def is_secret_field(name: str) -> bool:
    lowered = name.lower()
    if lowered in IDENTIFIER_FIELDS:
        return False
    return any(marker in lowered for marker in SECRET_FIELD_MARKERS)


def _scrub(value: Any) -> Any:
    return redact_text(value) if isinstance(value, str) else value


class SensitiveDataFilter(logging.Filter):
    """Mutates records in place; never drops one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)

        if isinstance(record.args, dict):
            record.args = {
                key: REDACTED if is_secret_field(key) else _scrub(value)
                for key, value in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(_scrub(arg) for arg in record.args)

        for name, value in list(vars(record).items()):
            if name in _RECORD_ATTRS or name.startswith("_"):
                continue
            record.__dict__[name] = REDACTED if is_secret_field(name) else _scrub(value)

        return True
