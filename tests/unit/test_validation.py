"""Unit tests for access_service/core/validation.py."""

import pytest

from access_service.core.exceptions import ValidationError
from access_service.core.validation import (
    MAX_CREDENTIAL_NAME_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    clean_access_entity,
    clean_credential,
    clean_project,
    derive_slug,
    normalize_description,
    normalize_ids,
    normalize_slug,
    validate_project_status,
    validate_risk_level,
    validate_slug,
    validate_user_id,
)


@pytest.mark.unit
class TestNormalization:
    def test_slug_is_trimmed_and_lowercased(self):
        assert normalize_slug("  Users.Read ") == "users.read"

    def test_blank_description_becomes_none(self):
        assert normalize_description("   ") is None
        assert normalize_description(None) is None

    def test_description_is_trimmed(self):
        assert normalize_description("  hello ") == "hello"

    def test_ids_drop_blanks_and_duplicates_in_order(self):
        assert normalize_ids(["b", " a ", "", "b", None, "c"]) == ["b", "a", "c"]

    def test_ids_none_is_empty(self):
        assert normalize_ids(None) == []

    def test_derive_slug_from_display_name(self):
        assert derive_slug("Export Data!") == "export.data"
        assert derive_slug("  ") == ""


@pytest.mark.unit
class TestCleanAccessEntity:
    def test_returns_clean_values(self):
        assert clean_access_entity("Permission", "  Read Users ", " Users.Read ", "  ") == (
            "Read Users",
            "users.read",
            None,
        )

    def test_missing_name_names_the_kind(self):
        with pytest.raises(ValidationError, match="Permission name is required."):
            clean_access_entity("Permission", "   ", "users.read", None)

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError, match="too short"):
            clean_access_entity("Role", "a", "ab", None)

    def test_long_name_rejected(self):
        with pytest.raises(ValidationError, match="too long") as exc_info:
            clean_access_entity("Role", "x" * (MAX_NAME_LENGTH + 1), "ab", None)
        assert exc_info.value.field == "name"

    def test_name_at_limit_accepted(self):
        name, _, _ = clean_access_entity("Role", "x" * MAX_NAME_LENGTH, "ab", None)
        assert len(name) == MAX_NAME_LENGTH

    def test_missing_slug_rejected(self):
        with pytest.raises(ValidationError, match="Slug is required."):
            clean_access_entity("Role", "Admin", "  ", None)

    @pytest.mark.parametrize("slug", ["users-read", "users read", "users_read", "user/read"])
    def test_slug_charset_enforced(self, slug):
        with pytest.raises(ValidationError, match="lowercase letters, numbers and dots"):
            clean_access_entity("Permission", "Read Users", slug, None)

    def test_uppercase_slug_is_lowercased_not_rejected(self):
        _, slug, _ = clean_access_entity("Permission", "Read Users", "USERS.READ", None)
        assert slug == "users.read"

    def test_description_limit(self):
        with pytest.raises(ValidationError, match="Description is too long."):
            clean_access_entity("Role", "Admin", "admin", "d" * (MAX_DESCRIPTION_LENGTH + 1))


@pytest.mark.unit
class TestOtherValidators:
    def test_risk_levels(self):
        for level in ("low", "medium", "high"):
            assert validate_risk_level(level) == level
        with pytest.raises(ValidationError, match="Invalid risk level."):
            validate_risk_level("critical")

    def test_project_status(self):
        assert validate_project_status("archived") == "archived"
        with pytest.raises(ValidationError):
            validate_project_status("deleted")

    def test_slug_length_checked_after_charset(self):
        with pytest.raises(ValidationError, match="too short"):
            validate_slug("a")

    def test_credential_name_limit(self):
        name, description = clean_credential("x" * MAX_CREDENTIAL_NAME_LENGTH, " ")
        assert len(name) == MAX_CREDENTIAL_NAME_LENGTH
        assert description is None
        with pytest.raises(ValidationError, match="API key name is too long."):
            clean_credential("x" * (MAX_CREDENTIAL_NAME_LENGTH + 1), None)

    def test_credential_name_required(self):
        with pytest.raises(ValidationError, match="API key name is required."):
            clean_credential("", None)

    def test_project_values(self):
        assert clean_project(" Payments ", " Payments.EU ", None) == (
            "Payments",
            "payments.eu",
            None,
        )

    def test_user_id_trimmed_and_required(self):
        assert validate_user_id(" user-1 ") == "user-1"
        with pytest.raises(ValidationError, match="Owner ID is required.") as exc_info:
            validate_user_id("  ", label="Owner ID", field="owner_id")
        assert exc_info.value.field == "owner_id"
