"""Permissions, roles and the role/permission linkage of a project.

Names are unique per project under case-folding, slugs are unique per project,
and system-flagged roles and permissions cannot be deleted.

Multi-statement sequences run as separate commits:
  - create_role inserts the role, then its links; if the links fail the role
    row is deleted again (best effort).
  - update_role deletes every link, then inserts the new set. A failure between
    the two leaves the role with no grants.
  - duplicate checks read before the insert; the unique indexes catch the race
    and surface it as ConflictError.

A role's ``permission_ids`` and ``user_count`` are computed at read time and
never stored.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from access_service.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from access_service.core.persistence import store_operation
from access_service.core.validation import (
    clean_access_entity,
    normalize_ids,
    validate_risk_level,
    validate_user_id,
)
from access_service.db.models import Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


@dataclass
class RoleWithPermissions:
    id: str
    project_id: str
    name: str
    slug: str
    description: Optional[str]
    is_system: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    permission_ids: List[str] = field(default_factory=list)
    user_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "is_system": self.is_system,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "permission_ids": list(self.permission_ids),
            "user_count": self.user_count,
        }


@dataclass(frozen=True)
class RoleChange:
    role: RoleWithPermissions
    added_permission_ids: List[str]
    removed_permission_ids: List[str]


class AccessGraphStore:
    """Owns ``permissions``, ``roles``, ``role_permissions`` and ``user_roles``."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _exists(
        self,
        model,
        project_id: str,
        column,
        value: str,
        exclude_id: Optional[str] = None,
        case_insensitive: bool = False,
    ) -> bool:
        with store_operation(self.db, f"Failed to validate {model.__tablename__}."):
            query = self.db.query(model.id).filter(model.project_id == project_id)
            if case_insensitive:
                query = query.filter(func.lower(column) == value.lower())
            else:
                query = query.filter(column == value)
            if exclude_id:
                query = query.filter(model.id != exclude_id)
            return query.first() is not None

    def _ensure_unique(
        self,
        kind: str,
        model,
        project_id: str,
        name: str,
        slug: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        if self._exists(model, project_id, model.name, name, exclude_id, case_insensitive=True):
            raise ConflictError(f"{kind} name already exists.")
        if self._exists(model, project_id, model.slug, slug, exclude_id):
            raise ConflictError(f"{kind} slug already exists.")

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def list_permissions(self, project_id: str) -> List[Permission]:
        with store_operation(self.db, "Failed to load permissions."):
            return (
                self.db.query(Permission)
                .filter(Permission.project_id == project_id)
                .order_by(Permission.created_at.desc())
                .all()
            )

    def get_permission(self, project_id: str, permission_id: str) -> Permission:
        with store_operation(self.db, "Failed to load permission."):
            permission = (
                self.db.query(Permission)
                .filter(Permission.id == permission_id, Permission.project_id == project_id)
                .first()
            )
        if permission is None:
            raise NotFoundError("Permission not found.", entity_type="permission")
        return permission

    def create_permission(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        risk_level: str = "low",
        is_system: bool = False,
    ) -> Permission:
        clean_name, clean_slug, clean_description = clean_access_entity(
            "Permission", name, slug, description
        )
        risk_level = validate_risk_level(risk_level)
        self._ensure_unique("Permission", Permission, project_id, clean_name, clean_slug)

        permission = Permission(
            project_id=project_id,
            name=clean_name,
            slug=clean_slug,
            description=clean_description,
            risk_level=risk_level,
            enabled=True,
            is_system=bool(is_system),
            usage_count=0,
        )
        with store_operation(
            self.db,
            "Failed to create permission.",
            conflict_message="Permission name or slug already exists.",
        ):
            self.db.add(permission)
            self.db.commit()
            self.db.refresh(permission)
        return permission

    def update_permission(
        self,
        project_id: str,
        permission_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        risk_level: str = "low",
        enabled: bool = True,
    ) -> Permission:
        clean_name, clean_slug, clean_description = clean_access_entity(
            "Permission", name, slug, description
        )
        risk_level = validate_risk_level(risk_level)
        permission = self.get_permission(project_id, permission_id)
        self._ensure_unique(
            "Permission", Permission, project_id, clean_name, clean_slug, exclude_id=permission_id
        )

        with store_operation(
            self.db,
            "Failed to update permission.",
            conflict_message="Permission name or slug already exists.",
        ):
            permission.name = clean_name
            permission.slug = clean_slug
            permission.description = clean_description
            permission.risk_level = risk_level
            permission.enabled = bool(enabled)
            permission.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(permission)
        return permission

    def toggle_permission(self, project_id: str, permission_id: str, enabled: bool) -> Permission:
        """Flip only the ``enabled`` flag."""
        permission = self.get_permission(project_id, permission_id)
        with store_operation(self.db, "Failed to toggle permission."):
            permission.enabled = bool(enabled)
            permission.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(permission)
        return permission

    def delete_permission(self, project_id: str, permission_id: str) -> Dict[str, Any]:
        """Delete a non-system permission.

        Links to it are removed by the store's ON DELETE CASCADE; role reads
        skip any link whose permission row is gone.
        """
        permission = self.get_permission(project_id, permission_id)
        if permission.is_system:
            raise ConflictError("System permissions cannot be deleted.")
        snapshot = permission.to_dict()
        with store_operation(self.db, "Failed to delete permission."):
            self.db.delete(permission)
            self.db.commit()
        return snapshot

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def _project_roles(self, roles: List[Role]) -> List[RoleWithPermissions]:
        """Attach permission ids and grant counts to role rows."""
        if not roles:
            return []
        role_ids = [role.id for role in roles]
        with store_operation(self.db, "Failed to load role permissions."):
            link_rows = (
                self.db.query(RolePermission.role_id, RolePermission.permission_id)
                .join(Permission, Permission.id == RolePermission.permission_id)
                .filter(RolePermission.role_id.in_(role_ids))
                .order_by(Permission.created_at.asc())
                .all()
            )
            count_rows = (
                self.db.query(UserRole.role_id, func.count(UserRole.id))
                .filter(UserRole.role_id.in_(role_ids))
                .group_by(UserRole.role_id)
                .all()
            )

        permissions_by_role: Dict[str, List[str]] = {role_id: [] for role_id in role_ids}
        for role_id, permission_id in link_rows:
            permissions_by_role[role_id].append(permission_id)
        user_counts = {role_id: count for role_id, count in count_rows}

        return [
            RoleWithPermissions(
                id=role.id,
                project_id=role.project_id,
                name=role.name,
                slug=role.slug,
                description=role.description,
                is_system=bool(role.is_system),
                created_at=role.created_at,
                updated_at=role.updated_at,
                permission_ids=permissions_by_role[role.id],
                user_count=user_counts.get(role.id, 0),
            )
            for role in roles
        ]

    def _get_role_row(self, project_id: str, role_id: str) -> Role:
        with store_operation(self.db, "Failed to load role."):
            role = (
                self.db.query(Role)
                .filter(Role.id == role_id, Role.project_id == project_id)
                .first()
            )
        if role is None:
            raise NotFoundError("Role not found.", entity_type="role")
        return role

    def list_roles(self, project_id: str) -> List[RoleWithPermissions]:
        with store_operation(self.db, "Failed to load roles."):
            roles = (
                self.db.query(Role)
                .filter(Role.project_id == project_id)
                .order_by(Role.created_at.desc())
                .all()
            )
        return self._project_roles(roles)

    def get_role(self, project_id: str, role_id: str) -> RoleWithPermissions:
        return self._project_roles([self._get_role_row(project_id, role_id)])[0]

    def _validate_permission_ids(self, project_id: str, permission_ids: List[str]) -> None:
        if not permission_ids:
            return
        with store_operation(self.db, "Failed to validate permissions."):
            found = {
                row[0]
                for row in self.db.query(Permission.id)
                .filter(Permission.project_id == project_id, Permission.id.in_(permission_ids))
                .all()
            }
        if any(permission_id not in found for permission_id in permission_ids):
            raise ValidationError(
                "Invalid permissions selected.",
                field="permission_ids",
                details={"invalid_ids": [pid for pid in permission_ids if pid not in found]},
            )

    def _current_permission_ids(self, role_id: str) -> List[str]:
        with store_operation(self.db, "Failed to load role permissions."):
            return [
                row[0]
                for row in self.db.query(RolePermission.permission_id)
                .filter(RolePermission.role_id == role_id)
                .all()
            ]

    def _insert_links(self, role_id: str, permission_ids: List[str]) -> None:
        if not permission_ids:
            return
        with store_operation(self.db, "Failed to assign permissions to role."):
            self.db.add_all(
                RolePermission(role_id=role_id, permission_id=permission_id)
                for permission_id in permission_ids
            )
            self.db.commit()

    def _delete_links(self, role_id: str) -> None:
        with store_operation(self.db, "Failed to update role permissions."):
            self.db.query(RolePermission).filter(RolePermission.role_id == role_id).delete(
                synchronize_session=False
            )
            self.db.commit()

    def _discard_role(self, project_id: str, role_id: str) -> None:
        """Compensate a half-created role. Failure here is logged, not raised."""
        try:
            with store_operation(self.db, "Failed to roll back role creation."):
                self.db.query(Role).filter(
                    Role.id == role_id, Role.project_id == project_id
                ).delete(synchronize_session=False)
                self.db.commit()
        except PersistenceError:
            logger.error("Orphaned role left after failed link insert", extra={"role_id": role_id})

    def create_role(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[str]] = None,
        is_system: bool = False,
    ) -> RoleWithPermissions:
        clean_name, clean_slug, clean_description = clean_access_entity(
            "Role", name, slug, description
        )
        ids = normalize_ids(permission_ids)
        self._ensure_unique("Role", Role, project_id, clean_name, clean_slug)
        self._validate_permission_ids(project_id, ids)

        role = Role(
            project_id=project_id,
            name=clean_name,
            slug=clean_slug,
            description=clean_description,
            is_system=bool(is_system),
        )
        with store_operation(
            self.db, "Failed to create role.", conflict_message="Role name or slug already exists."
        ):
            self.db.add(role)
            self.db.commit()
            self.db.refresh(role)
        role_id = role.id

        try:
            self._insert_links(role_id, ids)
        except PersistenceError as exc:
            self._discard_role(project_id, role_id)
            raise PersistenceError("Failed to create role.") from exc

        return self.get_role(project_id, role_id)

    def update_role(
        self,
        project_id: str,
        role_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[str]] = None,
        is_system: bool = False,
    ) -> RoleChange:
        clean_name, clean_slug, clean_description = clean_access_entity(
            "Role", name, slug, description
        )
        ids = normalize_ids(permission_ids)
        role = self._get_role_row(project_id, role_id)
        self._ensure_unique("Role", Role, project_id, clean_name, clean_slug, exclude_id=role_id)
        self._validate_permission_ids(project_id, ids)
        previous_ids = self._current_permission_ids(role_id)

        with store_operation(
            self.db, "Failed to update role.", conflict_message="Role name or slug already exists."
        ):
            role.name = clean_name
            role.slug = clean_slug
            role.description = clean_description
            role.is_system = bool(is_system)
            role.updated_at = datetime.now(timezone.utc)
            self.db.commit()

        # Replace the whole link set: delete, then insert, as separate commits
        self._delete_links(role_id)
        self._insert_links(role_id, ids)

        return RoleChange(
            role=self.get_role(project_id, role_id),
            added_permission_ids=[pid for pid in ids if pid not in previous_ids],
            removed_permission_ids=[pid for pid in previous_ids if pid not in ids],
        )

    def delete_role(self, project_id: str, role_id: str) -> RoleWithPermissions:
        role = self.get_role(project_id, role_id)
        if role.is_system:
            raise ConflictError("System roles cannot be deleted.")
        self._delete_links(role_id)
        with store_operation(self.db, "Failed to delete role."):
            self.db.query(Role).filter(
                Role.id == role_id, Role.project_id == project_id
            ).delete(synchronize_session=False)
            self.db.commit()
        return role

    # ------------------------------------------------------------------
    # Role grants (user_roles)
    # ------------------------------------------------------------------

    def grant_role(self, project_id: str, role_id: str, user_id: str) -> UserRole:
        user_id = validate_user_id(user_id)
        self._get_role_row(project_id, role_id)
        grant = UserRole(project_id=project_id, role_id=role_id, user_id=user_id)
        with store_operation(
            self.db, "Failed to grant role.", conflict_message="User already has this role."
        ):
            self.db.add(grant)
            self.db.commit()
            self.db.refresh(grant)
        return grant

    def revoke_role_grant(self, project_id: str, role_id: str, user_id: str) -> str:
        self._get_role_row(project_id, role_id)
        with store_operation(self.db, "Failed to revoke role."):
            removed = (
                self.db.query(UserRole)
                .filter(
                    UserRole.project_id == project_id,
                    UserRole.role_id == role_id,
                    UserRole.user_id == (user_id or "").strip(),
                )
                .delete(synchronize_session=False)
            )
            if not removed:
                self.db.rollback()
                raise NotFoundError("Role grant not found.", entity_type="role")
            self.db.commit()
        return user_id
