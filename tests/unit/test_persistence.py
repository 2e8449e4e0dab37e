"""Unit tests for access_service/core/persistence.py."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from access_service.core.exceptions import ConflictError, PersistenceError
from access_service.core.persistence import (
    LEGACY_SINGLE_KEY_CONSTRAINT,
    LEGACY_SINGLE_KEY_MESSAGE,
    store_operation,
)


def _integrity_error(text: str) -> IntegrityError:
    return IntegrityError("INSERT INTO api_keys ...", {}, Exception(text))


@pytest.mark.unit
class TestStoreOperation:
    def test_success_passes_through(self):
        db = MagicMock()
        with store_operation(db, "Failed."):
            pass
        db.rollback.assert_not_called()

    def test_legacy_single_key_constraint(self):
        db = MagicMock()
        with pytest.raises(ConflictError) as exc_info:
            with store_operation(db, "Failed to generate API key.", conflict_message="dup"):
                raise _integrity_error(
                    f'duplicate key value violates unique constraint "{LEGACY_SINGLE_KEY_CONSTRAINT}"'
                )
        assert exc_info.value.message == LEGACY_SINGLE_KEY_MESSAGE
        assert "migration" in exc_info.value.message
        db.rollback.assert_called_once()

    def test_unique_violation_uses_conflict_message(self):
        db = MagicMock()
        with pytest.raises(ConflictError, match="Role name or slug already exists."):
            with store_operation(db, "Failed.", conflict_message="Role name or slug already exists."):
                raise _integrity_error("UNIQUE constraint failed: roles.slug")

    def test_integrity_without_conflict_message_is_persistence(self):
        db = MagicMock()
        with pytest.raises(PersistenceError, match="Failed to grant role."):
            with store_operation(db, "Failed to grant role."):
                raise _integrity_error("FOREIGN KEY constraint failed")

    def test_driver_text_never_reaches_message(self):
        db = MagicMock()
        with pytest.raises(PersistenceError) as exc_info:
            with store_operation(db, "Failed to load roles."):
                raise OperationalError("SELECT ...", {}, Exception("no such table: roles"))
        assert exc_info.value.message == "Failed to load roles."
        assert isinstance(exc_info.value.__cause__, OperationalError)
        db.rollback.assert_called_once()

    def test_domain_errors_are_not_translated(self):
        db = MagicMock()
        with pytest.raises(ConflictError, match="System roles"):
            with store_operation(db, "Failed."):
                raise ConflictError("System roles cannot be deleted.")
        db.rollback.assert_not_called()
