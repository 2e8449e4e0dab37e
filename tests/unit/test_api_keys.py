"""Unit tests for access_service/core/api_keys.py."""

import re

import pytest
from sqlalchemy.exc import OperationalError

from access_service.core.api_keys import INVALID_API_KEY, CredentialManager
from access_service.core.crypto import hash_secret
from access_service.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


@pytest.fixture
def manager(db_session, cipher) -> CredentialManager:
    return CredentialManager(db_session, cipher)


@pytest.mark.unit
class TestGenerate:
    def test_returns_prefixed_secret_and_active_record(self, manager, project):
        generated = manager.generate(project.id, "  CI deploy ", "  pipeline ")
        assert re.fullmatch(r"sk_live_[0-9a-f]{48}", generated.raw_secret)
        assert generated.record.name == "CI deploy"
        assert generated.record.description == "pipeline"
        assert generated.record.status == "active"
        assert generated.record.usage_count == 0

    def test_secret_is_stored_hashed_and_encrypted(self, manager, project, cipher):
        generated = manager.generate(project.id, "CI deploy")
        record = generated.record
        assert record.key_hash == hash_secret(generated.raw_secret)
        assert generated.raw_secret not in record.key_encrypted
        assert cipher.decrypt(record.key_encrypted) == generated.raw_secret

    def test_public_view_has_no_secret_material(self, manager, project):
        view = manager.generate(project.id, "CI deploy").record.to_dict()
        assert "key_hash" not in view
        assert "key_encrypted" not in view

    def test_custom_prefix(self, db_session, cipher, project):
        generated = CredentialManager(db_session, cipher, key_prefix="sk_test_").generate(
            project.id, "Staging"
        )
        assert generated.raw_secret.startswith("sk_test_")

    def test_duplicate_name_is_case_insensitive(self, manager, project):
        manager.generate(project.id, "CI Deploy")
        with pytest.raises(ConflictError, match="API key name already exists."):
            manager.generate(project.id, "ci deploy")

    def test_same_name_allowed_in_another_project(self, manager, project, other_project):
        manager.generate(project.id, "CI deploy")
        assert manager.generate(other_project.id, "CI deploy").record.project_id == other_project.id

    def test_concurrent_duplicate_surfaces_as_conflict(self, manager, project, monkeypatch):
        manager.generate(project.id, "Primary key")
        # Both requests passed the name check before either inserted
        monkeypatch.setattr(manager, "_name_taken", lambda *args, **kwargs: False)

        with pytest.raises(ConflictError, match="API key name already exists."):
            manager.generate(project.id, "PRIMARY KEY")

        assert [key.name for key in manager.list(project.id)] == ["Primary key"]

    def test_invalid_name_rejected_before_store(self, manager, project):
        with pytest.raises(ValidationError, match="API key name is required."):
            manager.generate(project.id, "   ")
        assert manager.list(project.id) == []


@pytest.mark.unit
class TestAuthenticate:
    def test_valid_secret_increments_usage(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")

        first = manager.authenticate(generated.raw_secret)
        manager.authenticate(generated.raw_secret)

        assert first.key_id == generated.record.id
        assert first.project_id == project.id
        record = manager.get(project.id, generated.record.id)
        assert record.usage_count == 2
        assert record.last_used_at is not None

    def test_unknown_secret_rejected(self, manager, project):
        with pytest.raises(AuthorizationError, match=INVALID_API_KEY):
            manager.authenticate("sk_live_" + "0" * 48)

    def test_empty_secret_rejected(self, manager):
        with pytest.raises(AuthorizationError, match=INVALID_API_KEY):
            manager.authenticate("")

    def test_revoked_and_deleted_are_indistinguishable(self, manager, project):
        revoked = manager.generate(project.id, "Revoked")
        deleted = manager.generate(project.id, "Deleted")
        manager.revoke(project.id, revoked.record.id)
        manager.delete(project.id, deleted.record.id)

        with pytest.raises(AuthorizationError) as revoked_exc:
            manager.authenticate(revoked.raw_secret)
        with pytest.raises(AuthorizationError) as deleted_exc:
            manager.authenticate(deleted.raw_secret)
        assert revoked_exc.value.message == deleted_exc.value.message == INVALID_API_KEY

    def test_rejected_secret_does_not_touch_usage(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")
        manager.revoke(project.id, generated.record.id)
        with pytest.raises(AuthorizationError):
            manager.authenticate(generated.raw_secret)
        assert manager.get(project.id, generated.record.id).usage_count == 0


@pytest.mark.unit
class TestRotate:
    def test_replaces_key_with_new_id_and_secret(self, manager, project):
        old = manager.generate(project.id, "CI deploy")

        rotated = manager.rotate(project.id, old.record.id, "CI deploy", "rotated")

        assert rotated.replaced_id == old.record.id
        assert rotated.record.id != old.record.id
        assert rotated.raw_secret != old.raw_secret
        assert [key.id for key in manager.list(project.id)] == [rotated.record.id]

    def test_old_secret_stops_working(self, manager, project):
        old = manager.generate(project.id, "CI deploy")
        rotated = manager.rotate(project.id, old.record.id, "CI deploy")

        with pytest.raises(AuthorizationError):
            manager.authenticate(old.raw_secret)
        assert manager.authenticate(rotated.raw_secret).key_id == rotated.record.id
        assert manager.get(project.id, rotated.record.id).usage_count == 1

    def test_name_clash_with_other_key_rejected(self, manager, project):
        old = manager.generate(project.id, "CI deploy")
        manager.generate(project.id, "Nightly")
        with pytest.raises(ConflictError):
            manager.rotate(project.id, old.record.id, "nightly")
        assert len(manager.list(project.id)) == 2

    def test_revoked_key_cannot_be_rotated(self, manager, project):
        old = manager.generate(project.id, "CI deploy")
        manager.revoke(project.id, old.record.id)
        with pytest.raises(ConflictError, match="Only active API keys can be rotated."):
            manager.rotate(project.id, old.record.id, "CI deploy")

    def test_unknown_key(self, manager, project):
        with pytest.raises(NotFoundError, match="API key not found."):
            manager.rotate(project.id, "missing", "CI deploy")

    def test_blank_name_rejected_before_key_lookup(self, manager, project):
        with pytest.raises(ValidationError, match="API key name is required."):
            manager.rotate(project.id, "missing", "")

    def test_blank_name_leaves_key_untouched(self, manager, project):
        old = manager.generate(project.id, "CI deploy")
        with pytest.raises(ValidationError):
            manager.rotate(project.id, old.record.id, "  ")
        record = manager.get(project.id, old.record.id)
        assert record.replaced_by is None
        assert record.status == "active"

    def test_successful_rotation_leaves_no_replaced_marker(self, manager, project):
        old = manager.generate(project.id, "CI deploy")
        rotated = manager.rotate(project.id, old.record.id, "ci DEPLOY")
        assert manager.get(project.id, rotated.record.id).replaced_by is None

    def test_failed_insert_clears_replaced_marker(self, manager, project, monkeypatch):
        old = manager.generate(project.id, "CI deploy")

        def failing_insert(*args, **kwargs):
            raise PersistenceError("Failed to generate API key.")

        monkeypatch.setattr(manager, "_insert", failing_insert)

        with pytest.raises(PersistenceError, match="Failed to generate API key."):
            manager.rotate(project.id, old.record.id, "CI deploy")

        record = manager.get(project.id, old.record.id)
        assert record.replaced_by is None
        assert [key.id for key in manager.list(project.id)] == [old.record.id]

    def test_failed_delete_leaves_both_keys_active(self, manager, project, db_session, monkeypatch):
        old = manager.generate(project.id, "CI deploy")

        def failing_delete(instance):
            raise OperationalError("DELETE FROM api_keys", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "delete", failing_delete)

        with pytest.raises(PersistenceError) as exc_info:
            manager.rotate(project.id, old.record.id, "CI deploy")

        created_id = exc_info.value.details["created_api_key_id"]
        keys = {key.id: key.status for key in manager.list(project.id)}
        assert keys == {old.record.id: "active", created_id: "active"}
        assert manager.get(project.id, old.record.id).replaced_by == created_id
        assert "database is locked" not in exc_info.value.message


@pytest.mark.unit
class TestReveal:
    def test_returns_original_secret(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")
        revealed = manager.reveal(project.id, generated.record.id)
        assert revealed.raw_secret == generated.raw_secret
        assert revealed.name == "CI deploy"

    def test_scoped_to_project(self, manager, project, other_project):
        generated = manager.generate(project.id, "CI deploy")
        with pytest.raises(NotFoundError):
            manager.reveal(other_project.id, generated.record.id)

    def test_corrupt_ciphertext(self, manager, project, db_session):
        generated = manager.generate(project.id, "CI deploy")
        generated.record.key_encrypted = "corrupted"
        db_session.commit()
        with pytest.raises(PersistenceError, match="Failed to decrypt API key."):
            manager.reveal(project.id, generated.record.id)


@pytest.mark.unit
class TestRevokeAndDelete:
    def test_revoke_keeps_row(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")
        record = manager.revoke(project.id, generated.record.id)
        assert record.status == "revoked"
        assert record.updated_at is not None
        assert [key.id for key in manager.list(project.id)] == [generated.record.id]

    def test_revoke_twice(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")
        manager.revoke(project.id, generated.record.id)
        with pytest.raises(ConflictError, match="already revoked"):
            manager.revoke(project.id, generated.record.id)

    def test_delete_removes_row(self, manager, project):
        key_id = manager.generate(project.id, "CI deploy").record.id
        assert manager.delete(project.id, key_id) == key_id
        assert manager.list(project.id) == []
        with pytest.raises(NotFoundError):
            manager.delete(project.id, key_id)

    def test_name_reusable_after_delete(self, manager, project):
        generated = manager.generate(project.id, "CI deploy")
        manager.delete(project.id, generated.record.id)
        assert manager.generate(project.id, "CI deploy").record.name == "CI deploy"
