"""API key lifecycle: generate, rotate, reveal, authenticate, revoke and delete.

Secrets are stored twice and never in the clear:
  key_hash      : SHA-256 of the raw secret, looked up on every authentication
  key_encrypted : Fernet ciphertext, decrypted only on explicit reveal

The raw secret exists in memory only while generating, rotating or revealing.

Rotation marks the old key as replaced, creates the new one and then deletes
the old one, three separate commits. A marked key no longer holds its name,
so the replacement can reuse it. If the delete fails both keys stay active
until an operator removes the old one; the new key's id travels in the error
details so the caller can still audit it.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from access_service.core.crypto import DEFAULT_PREFIX, SecretCipher, generate_raw_secret, hash_secret
from access_service.core.exceptions import (
    AccessServiceError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from access_service.core.persistence import store_operation
from access_service.core.validation import clean_credential
from access_service.db.models import ApiKey

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_REVOKED = "revoked"

INVALID_API_KEY = "Invalid API key"
NAME_TAKEN = "API key name already exists."


@dataclass(frozen=True)
class GeneratedCredential:
    raw_secret: str
    record: ApiKey


@dataclass(frozen=True)
class RotatedCredential:
    raw_secret: str
    record: ApiKey
    replaced_id: str


@dataclass(frozen=True)
class RevealedCredential:
    id: str
    name: str
    raw_secret: str


@dataclass(frozen=True)
class AuthenticatedKey:
    key_id: str
    project_id: str


class CredentialManager:
    """Owns the ``api_keys`` table. One instance per unit of work (session)."""

    def __init__(self, db: Session, cipher: SecretCipher, key_prefix: str = DEFAULT_PREFIX):
        self.db = db
        self.cipher = cipher
        self.key_prefix = key_prefix

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, project_id: str, key_id: str) -> ApiKey:
        with store_operation(self.db, "Failed to load API key."):
            record = (
                self.db.query(ApiKey)
                .filter(ApiKey.id == key_id, ApiKey.project_id == project_id)
                .first()
            )
        if record is None:
            raise NotFoundError("API key not found.", entity_type="api_key")
        return record

    def list(self, project_id: str) -> List[ApiKey]:
        """Return the project's keys, newest first. No secret material is read."""
        with store_operation(self.db, "Failed to load API keys."):
            return (
                self.db.query(ApiKey)
                .filter(ApiKey.project_id == project_id)
                .order_by(ApiKey.created_at.desc())
                .all()
            )

    def _name_taken(self, project_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        with store_operation(self.db, "Failed to validate API key name."):
            query = self.db.query(ApiKey.id).filter(
                ApiKey.project_id == project_id,
                func.lower(ApiKey.name) == name.lower(),
                ApiKey.replaced_by.is_(None),
            )
            if exclude_id:
                query = query.filter(ApiKey.id != exclude_id)
            return query.first() is not None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def generate(
        self,
        project_id: str,
        name: str,
        description: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> GeneratedCredential:
        """Create and persist a new active key.

        The returned raw secret is the only plaintext copy handed out; later it
        can be recovered only through :meth:`reveal`.
        """
        clean_name, clean_description = clean_credential(name, description)
        if self._name_taken(project_id, clean_name, exclude_id=exclude_id):
            raise ConflictError(NAME_TAKEN)
        return self._insert(project_id, clean_name, clean_description)

    def _insert(
        self,
        project_id: str,
        name: str,
        description: Optional[str],
        key_id: Optional[str] = None,
    ) -> GeneratedCredential:
        raw_secret = generate_raw_secret(self.key_prefix)
        record = ApiKey(
            id=key_id or str(uuid.uuid4()),
            project_id=project_id,
            name=name,
            description=description,
            status=STATUS_ACTIVE,
            usage_count=0,
            key_hash=hash_secret(raw_secret),
            key_encrypted=self.cipher.encrypt(raw_secret),
        )
        with store_operation(self.db, "Failed to generate API key.", conflict_message=NAME_TAKEN):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        logger.info("Generated API key", extra={"api_key_id": record.id, "project_id": project_id})
        return GeneratedCredential(raw_secret=raw_secret, record=record)

    def _mark_replaced(self, record: ApiKey, replacement_id: Optional[str]) -> None:
        with store_operation(self.db, "Failed to rotate API key."):
            record.replaced_by = replacement_id
            record.updated_at = datetime.now(timezone.utc)
            self.db.commit()

    def rotate(
        self,
        project_id: str,
        key_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> RotatedCredential:
        """Replace an active key with a brand-new one (new id, new secret).

        The old row is marked ``replaced_by`` before the replacement is
        inserted, which frees its name for the new row.
        """
        clean_name, clean_description = clean_credential(name, description)
        old = self.get(project_id, key_id)
        if old.status != STATUS_ACTIVE:
            raise ConflictError("Only active API keys can be rotated.")
        if self._name_taken(project_id, clean_name, exclude_id=key_id):
            raise ConflictError(NAME_TAKEN)

        new_id = str(uuid.uuid4())
        self._mark_replaced(old, new_id)
        try:
            generated = self._insert(project_id, clean_name, clean_description, key_id=new_id)
        except AccessServiceError:
            try:
                self._mark_replaced(old, None)
            except AccessServiceError:
                logger.error(
                    "Rotation marker left on API key after failed insert",
                    extra={"api_key_id": key_id, "project_id": project_id},
                )
            raise

        try:
            with store_operation(self.db, "Failed to remove the replaced API key."):
                self.db.delete(old)
                self.db.commit()
        except PersistenceError as exc:
            logger.error(
                "Rotation left two active keys",
                extra={"api_key_id": key_id, "replacement_id": new_id, "project_id": project_id},
            )
            exc.details["created_api_key_id"] = new_id
            raise
        logger.info(
            "Rotated API key",
            extra={"api_key_id": key_id, "replacement_id": new_id, "project_id": project_id},
        )
        return RotatedCredential(
            raw_secret=generated.raw_secret, record=generated.record, replaced_id=key_id
        )

    def reveal(self, project_id: str, key_id: str) -> RevealedCredential:
        record = self.get(project_id, key_id)
        try:
            raw_secret = self.cipher.decrypt(record.key_encrypted)
        except ValueError as exc:
            logger.error("Stored API key ciphertext is unreadable", extra={"api_key_id": key_id})
            raise PersistenceError("Failed to decrypt API key.") from exc
        return RevealedCredential(id=record.id, name=record.name, raw_secret=raw_secret)

    def authenticate(self, raw_secret: str) -> AuthenticatedKey:
        """Verify a raw secret and record one use of the matching key.

        Wrong, revoked and deleted secrets all fail with the same error.
        The usage counter is bumped with a single atomic UPDATE.
        """
        if not raw_secret:
            raise AuthorizationError(INVALID_API_KEY)
        key_hash = hash_secret(raw_secret)
        with store_operation(self.db, "Failed to verify API key."):
            matched = (
                self.db.query(ApiKey)
                .filter(ApiKey.key_hash == key_hash, ApiKey.status == STATUS_ACTIVE)
                .update(
                    {
                        ApiKey.usage_count: ApiKey.usage_count + 1,
                        ApiKey.last_used_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
            if not matched:
                self.db.rollback()
                logger.info("Rejected API key authentication")
                raise AuthorizationError(INVALID_API_KEY)
            key_id, project_id = (
                self.db.query(ApiKey.id, ApiKey.project_id)
                .filter(ApiKey.key_hash == key_hash)
                .one()
            )
            self.db.commit()
        return AuthenticatedKey(key_id=key_id, project_id=project_id)

    def revoke(self, project_id: str, key_id: str) -> ApiKey:
        """Soft-disable a key; it stays listed but can no longer authenticate."""
        record = self.get(project_id, key_id)
        if record.status == STATUS_REVOKED:
            raise ConflictError("API key is already revoked.")
        with store_operation(self.db, "Failed to revoke API key."):
            record.status = STATUS_REVOKED
            record.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(record)
        return record

    def delete(self, project_id: str, key_id: str) -> str:
        record = self.get(project_id, key_id)
        with store_operation(self.db, "Failed to delete API key."):
            self.db.delete(record)
            self.db.commit()
        return key_id
