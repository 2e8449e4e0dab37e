"""Database models for projects, API keys, the role/permission graph and audit logs."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)

from access_service.db.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class Project(Base):
    """Owner of every other row, identified by id and a unique slug."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(64), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    slug = Column(String(120), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="active")  # active, archived
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "archived_at": _iso(self.archived_at),
        }


class ApiKey(Base):
    """Machine credential. The raw secret is never stored in the clear."""

    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String(80), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="active")  # active, revoked
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    key_hash = Column(String(64), nullable=False, unique=True, index=True)
    key_encrypted = Column(Text, nullable=False)
    # Set while a rotation replaces this key; takes the row out of the name index
    replaced_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        """Public view; secret material is deliberately absent."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "usage_count": self.usage_count or 0,
            "last_used_at": _iso(self.last_used_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("project_id", "slug", name="uq_permissions_project_slug"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String(64), nullable=False)
    slug = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)
    risk_level = Column(String(8), nullable=False, default="low")  # low, medium, high
    is_system = Column(Boolean, nullable=False, default=False)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "enabled": bool(self.enabled),
            "risk_level": self.risk_level,
            "is_system": bool(self.is_system),
            "usage_count": self.usage_count or 0,
            "last_used_at": _iso(self.last_used_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("project_id", "slug", name="uq_roles_project_slug"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(String(64), nullable=False)
    slug = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class RolePermission(Base):
    """Join row: existence means the role grants the permission."""

    __tablename__ = "role_permissions"

    role_id = Column(
        String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    permission_id = Column(
        String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class UserRole(Base):
    """External grant of a role to a user; backs the derived ``user_count``."""

    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("role_id", "user_id", name="uq_user_roles_role_user"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role_id = Column(
        String(36), ForeignKey("roles.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class AuditLog(Base):
    """Append-only audit event. Rows are never updated or deleted."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), index=True, nullable=False)
    user_id = Column(String(64), nullable=True)
    entity_type = Column(String(16), nullable=False)  # permission, role, api_key, project
    entity_id = Column(String(36), nullable=True)
    action = Column(String(16), nullable=False)  # created, updated, deleted, granted, revoked
    event_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "metadata": self.event_metadata,
            "created_at": _iso(self.created_at),
        }


# Case-insensitive name uniqueness per project; the loser of a concurrent
# check-then-insert race hits these and surfaces as a ConflictError.
# A key being rotated is excluded so its replacement can reuse the name.
Index(
    "uq_api_keys_project_name",
    ApiKey.project_id,
    func.lower(ApiKey.name),
    unique=True,
    sqlite_where=ApiKey.replaced_by.is_(None),
    postgresql_where=ApiKey.replaced_by.is_(None),
)
Index("uq_permissions_project_name", Permission.project_id, func.lower(Permission.name), unique=True)
Index("uq_roles_project_name", Role.project_id, func.lower(Role.name), unique=True)
