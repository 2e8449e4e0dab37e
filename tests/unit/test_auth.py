"""Unit tests for access_service/core/auth.py."""

import pytest

from access_service.core.auth import bearer_secret, parse_bearer_header, require_caller_identity
from access_service.core.exceptions import AuthorizationError, ValidationError


@pytest.mark.unit
class TestParseBearerHeader:
    def test_extracts_token(self):
        assert parse_bearer_header("Bearer sk_live_abc") == "sk_live_abc"

    def test_scheme_is_case_insensitive(self):
        assert parse_bearer_header("  bearer   sk_live_abc  ") == "sk_live_abc"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(ValidationError, match="Missing Authorization header."):
            parse_bearer_header(value)

    def test_wrong_scheme(self):
        with pytest.raises(ValidationError, match="Bearer scheme"):
            parse_bearer_header("Basic dXNlcjpwYXNz")

    @pytest.mark.parametrize("value", ["Bearer", "Bearer a b"])
    def test_malformed(self, value):
        with pytest.raises(ValidationError, match="Malformed Bearer token."):
            parse_bearer_header(value)


@pytest.mark.unit
class TestDependencies:
    async def test_bearer_secret(self):
        assert await bearer_secret("Bearer sk_live_abc") == "sk_live_abc"

    async def test_caller_identity(self):
        assert await require_caller_identity(" user-1 ") == "user-1"

    async def test_missing_caller_identity(self):
        with pytest.raises(AuthorizationError):
            await require_caller_identity(None)
