"""Caller-facing orchestration over the credential, access-graph, project and audit components.

Each operation validates its input, verifies the project, runs the component
call, appends the audit entries for a successful mutation and returns a
:class:`Result`. Invalid input is rejected before any store access.
Component errors come back as ``Err``; nothing is raised to the caller.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from access_service.core.access_graph import AccessGraphStore, RoleWithPermissions
from access_service.core.api_keys import (
    AuthenticatedKey,
    CredentialManager,
    GeneratedCredential,
    RevealedCredential,
    RotatedCredential,
)
from access_service.core.audit import AuditLogger
from access_service.core.crypto import DEFAULT_PREFIX, SecretCipher
from access_service.core.exceptions import AccessServiceError
from access_service.core.projects import ProjectStore
from access_service.core.result import Err, Ok, Result
from access_service.core.validation import (
    clean_access_entity,
    clean_credential,
    clean_project,
    normalize_ids,
    validate_project_status,
    validate_risk_level,
    validate_user_id,
)
from access_service.db.models import ApiKey, AuditLog, Permission, Project

logger = logging.getLogger(__name__)


def _failure(operation: str, exc: AccessServiceError) -> Err:
    logger.info(
        "%s failed: %s",
        operation,
        exc.message,
        extra={"error_code": exc.error_code},
    )
    return Err(exc)


class AccessFacade:
    """Stateless per-request entry point. Build one per database session."""

    def __init__(
        self,
        db: Session,
        cipher: SecretCipher,
        key_prefix: str = DEFAULT_PREFIX,
        audit_page_size: int = 200,
        audit_max_page_size: int = 1000,
    ):
        self.projects = ProjectStore(db)
        self.credentials = CredentialManager(db, cipher, key_prefix=key_prefix)
        self.graph = AccessGraphStore(db)
        self.audit = AuditLogger(
            db, default_page_size=audit_page_size, max_page_size=audit_max_page_size
        )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def generate_credential(
        self,
        project_id: str,
        name: str,
        description: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Result[GeneratedCredential]:
        try:
            name, description = clean_credential(name, description)
            self.projects.get_project(project_id)
            generated = self.credentials.generate(project_id, name, description)
        except AccessServiceError as exc:
            return _failure("generate_credential", exc)
        self.audit.append(
            project_id,
            "api_key",
            "created",
            entity_id=generated.record.id,
            user_id=user_id,
            metadata={"event": "api_key_generated", "name": generated.record.name},
        )
        return Ok(generated)

    def rotate_credential(
        self,
        project_id: str,
        key_id: str,
        name: str,
        description: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Result[RotatedCredential]:
        try:
            name, description = clean_credential(name, description)
            self.projects.get_project(project_id)
            rotated = self.credentials.rotate(project_id, key_id, name, description)
        except AccessServiceError as exc:
            # The replacement exists even though the old key could not be removed
            created_id = exc.details.get("created_api_key_id")
            if created_id:
                self.audit.append(
                    project_id,
                    "api_key",
                    "created",
                    entity_id=created_id,
                    user_id=user_id,
                    metadata={"event": "api_key_rotated", "replaces": key_id},
                )
            return _failure("rotate_credential", exc)

        new_id = rotated.record.id
        self.audit.append(
            project_id,
            "api_key",
            "created",
            entity_id=new_id,
            user_id=user_id,
            metadata={"event": "api_key_rotated", "name": rotated.record.name, "replaces": key_id},
        )
        self.audit.append(
            project_id,
            "api_key",
            "deleted",
            entity_id=key_id,
            user_id=user_id,
            metadata={"event": "api_key_replaced", "replaced_by": new_id},
        )
        return Ok(rotated)

    def reveal_credential(self, project_id: str, key_id: str) -> Result[RevealedCredential]:
        try:
            self.projects.get_project(project_id)
            return Ok(self.credentials.reveal(project_id, key_id))
        except AccessServiceError as exc:
            return _failure("reveal_credential", exc)

    def revoke_credential(
        self, project_id: str, key_id: str, user_id: Optional[str] = None
    ) -> Result[ApiKey]:
        try:
            self.projects.get_project(project_id)
            record = self.credentials.revoke(project_id, key_id)
        except AccessServiceError as exc:
            return _failure("revoke_credential", exc)
        self.audit.append(
            project_id,
            "api_key",
            "revoked",
            entity_id=key_id,
            user_id=user_id,
            metadata={"event": "api_key_revoked", "name": record.name},
        )
        return Ok(record)

    def delete_credential(
        self, project_id: str, key_id: str, user_id: Optional[str] = None
    ) -> Result[Dict[str, str]]:
        try:
            self.projects.get_project(project_id)
            self.credentials.delete(project_id, key_id)
        except AccessServiceError as exc:
            return _failure("delete_credential", exc)
        self.audit.append(
            project_id,
            "api_key",
            "deleted",
            entity_id=key_id,
            user_id=user_id,
            metadata={"event": "api_key_deleted"},
        )
        return Ok({"id": key_id})

    def list_credentials(self, project_id: str) -> Result[List[ApiKey]]:
        try:
            self.projects.get_project(project_id)
            return Ok(self.credentials.list(project_id))
        except AccessServiceError as exc:
            return _failure("list_credentials", exc)

    def authenticate(self, raw_secret: str) -> Result[AuthenticatedKey]:
        try:
            return Ok(self.credentials.authenticate(raw_secret))
        except AccessServiceError as exc:
            return _failure("authenticate", exc)

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def list_permissions(self, project_id: str) -> Result[List[Permission]]:
        try:
            self.projects.get_project(project_id)
            return Ok(self.graph.list_permissions(project_id))
        except AccessServiceError as exc:
            return _failure("list_permissions", exc)

    def create_permission(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        risk_level: str = "low",
        user_id: Optional[str] = None,
    ) -> Result[Permission]:
        try:
            name, slug, description = clean_access_entity("Permission", name, slug, description)
            risk_level = validate_risk_level(risk_level)
            self.projects.get_project(project_id)
            permission = self.graph.create_permission(
                project_id, name, slug, description=description, risk_level=risk_level
            )
        except AccessServiceError as exc:
            return _failure("create_permission", exc)
        self.audit.append(
            project_id,
            "permission",
            "created",
            entity_id=permission.id,
            user_id=user_id,
            metadata={
                "event": "permission_created",
                "name": permission.name,
                "slug": permission.slug,
                "risk_level": permission.risk_level,
            },
        )
        return Ok(permission)

    def update_permission(
        self,
        project_id: str,
        permission_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        risk_level: str = "low",
        enabled: bool = True,
        user_id: Optional[str] = None,
    ) -> Result[Permission]:
        try:
            name, slug, description = clean_access_entity("Permission", name, slug, description)
            risk_level = validate_risk_level(risk_level)
            self.projects.get_project(project_id)
            permission = self.graph.update_permission(
                project_id,
                permission_id,
                name,
                slug,
                description=description,
                risk_level=risk_level,
                enabled=enabled,
            )
        except AccessServiceError as exc:
            return _failure("update_permission", exc)
        self.audit.append(
            project_id,
            "permission",
            "updated",
            entity_id=permission.id,
            user_id=user_id,
            metadata={
                "event": "permission_updated",
                "name": permission.name,
                "slug": permission.slug,
                "risk_level": permission.risk_level,
                "enabled": permission.enabled,
            },
        )
        return Ok(permission)

    def toggle_permission(
        self,
        project_id: str,
        permission_id: str,
        enabled: bool,
        user_id: Optional[str] = None,
    ) -> Result[Permission]:
        try:
            self.projects.get_project(project_id)
            permission = self.graph.toggle_permission(project_id, permission_id, enabled)
        except AccessServiceError as exc:
            return _failure("toggle_permission", exc)
        self.audit.append(
            project_id,
            "permission",
            "updated",
            entity_id=permission.id,
            user_id=user_id,
            metadata={
                "event": "permission_enabled" if permission.enabled else "permission_disabled",
                "name": permission.name,
            },
        )
        return Ok(permission)

    def delete_permission(
        self, project_id: str, permission_id: str, user_id: Optional[str] = None
    ) -> Result[Dict[str, str]]:
        try:
            self.projects.get_project(project_id)
            deleted = self.graph.delete_permission(project_id, permission_id)
        except AccessServiceError as exc:
            return _failure("delete_permission", exc)
        self.audit.append(
            project_id,
            "permission",
            "deleted",
            entity_id=permission_id,
            user_id=user_id,
            metadata={"event": "permission_deleted", "name": deleted["name"], "slug": deleted["slug"]},
        )
        return Ok({"id": permission_id})

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def list_roles(self, project_id: str) -> Result[List[RoleWithPermissions]]:
        try:
            self.projects.get_project(project_id)
            return Ok(self.graph.list_roles(project_id))
        except AccessServiceError as exc:
            return _failure("list_roles", exc)

    def create_role(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[str]] = None,
        is_system: bool = False,
        user_id: Optional[str] = None,
    ) -> Result[RoleWithPermissions]:
        try:
            name, slug, description = clean_access_entity("Role", name, slug, description)
            permission_ids = normalize_ids(permission_ids)
            self.projects.get_project(project_id)
            role = self.graph.create_role(
                project_id,
                name,
                slug,
                description=description,
                permission_ids=permission_ids,
                is_system=is_system,
            )
        except AccessServiceError as exc:
            return _failure("create_role", exc)
        self.audit.append(
            project_id,
            "role",
            "created",
            entity_id=role.id,
            user_id=user_id,
            metadata={
                "event": "role_created",
                "name": role.name,
                "slug": role.slug,
                "permission_ids": list(role.permission_ids),
            },
        )
        return Ok(role)

    def update_role(
        self,
        project_id: str,
        role_id: str,
        name: str,
        slug: str,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[str]] = None,
        is_system: bool = False,
        user_id: Optional[str] = None,
    ) -> Result[RoleWithPermissions]:
        try:
            name, slug, description = clean_access_entity("Role", name, slug, description)
            permission_ids = normalize_ids(permission_ids)
            self.projects.get_project(project_id)
            change = self.graph.update_role(
                project_id,
                role_id,
                name,
                slug,
                description=description,
                permission_ids=permission_ids,
                is_system=is_system,
            )
        except AccessServiceError as exc:
            return _failure("update_role", exc)
        self.audit.append(
            project_id,
            "role",
            "updated",
            entity_id=role_id,
            user_id=user_id,
            metadata={
                "event": "role_updated",
                "name": change.role.name,
                "slug": change.role.slug,
                "added_permission_ids": change.added_permission_ids,
                "removed_permission_ids": change.removed_permission_ids,
            },
        )
        return Ok(change.role)

    def delete_role(
        self, project_id: str, role_id: str, user_id: Optional[str] = None
    ) -> Result[Dict[str, str]]:
        try:
            self.projects.get_project(project_id)
            role = self.graph.delete_role(project_id, role_id)
        except AccessServiceError as exc:
            return _failure("delete_role", exc)
        self.audit.append(
            project_id,
            "role",
            "deleted",
            entity_id=role_id,
            user_id=user_id,
            metadata={"event": "role_deleted", "name": role.name, "slug": role.slug},
        )
        return Ok({"id": role_id})

    def grant_role(
        self, project_id: str, role_id: str, grantee_id: str, user_id: Optional[str] = None
    ) -> Result[Dict[str, str]]:
        try:
            grantee_id = validate_user_id(grantee_id)
            self.projects.get_project(project_id)
            grant = self.graph.grant_role(project_id, role_id, grantee_id)
        except AccessServiceError as exc:
            return _failure("grant_role", exc)
        self.audit.append(
            project_id,
            "role",
            "granted",
            entity_id=role_id,
            user_id=user_id,
            metadata={"event": "role_granted", "grantee_id": grant.user_id},
        )
        return Ok({"role_id": role_id, "user_id": grant.user_id})

    def revoke_role_grant(
        self, project_id: str, role_id: str, grantee_id: str, user_id: Optional[str] = None
    ) -> Result[Dict[str, str]]:
        try:
            self.projects.get_project(project_id)
            self.graph.revoke_role_grant(project_id, role_id, grantee_id)
        except AccessServiceError as exc:
            return _failure("revoke_role_grant", exc)
        self.audit.append(
            project_id,
            "role",
            "revoked",
            entity_id=role_id,
            user_id=user_id,
            metadata={"event": "role_grant_revoked", "grantee_id": grantee_id},
        )
        return Ok({"role_id": role_id, "user_id": grantee_id})

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _audit_project(
        self, project: Project, event: str, user_id: Optional[str], action: str = "updated", **extra: Any
    ) -> None:
        self.audit.append(
            project.id,
            "project",
            action,
            entity_id=project.id,
            user_id=user_id,
            metadata={"event": event, **extra},
        )

    def create_project(
        self, owner_id: str, name: str, slug: str, description: Optional[str] = None
    ) -> Result[Project]:
        try:
            project = self.projects.create_project(owner_id, name, slug, description)
        except AccessServiceError as exc:
            return _failure("create_project", exc)
        self._audit_project(
            project,
            "project_created",
            owner_id,
            action="created",
            name=project.name,
            slug=project.slug,
            status=project.status,
        )
        return Ok(project)

    def get_project(self, project_id: str) -> Result[Project]:
        try:
            return Ok(self.projects.get_project(project_id))
        except AccessServiceError as exc:
            return _failure("get_project", exc)

    def list_projects(self, owner_id: Optional[str] = None) -> Result[List[Project]]:
        try:
            return Ok(self.projects.list_projects(owner_id))
        except AccessServiceError as exc:
            return _failure("list_projects", exc)

    def update_project_settings(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str],
        status: str,
        user_id: Optional[str] = None,
    ) -> Result[Project]:
        try:
            name, slug, description = clean_project(name, slug, description)
            status = validate_project_status(status)
            project = self.projects.update_settings(project_id, name, slug, description, status)
        except AccessServiceError as exc:
            return _failure("update_project_settings", exc)
        self._audit_project(
            project,
            "project_settings_updated",
            user_id,
            name=project.name,
            slug=project.slug,
            status=project.status,
        )
        return Ok(project)

    def archive_project(self, project_id: str, user_id: Optional[str] = None) -> Result[Project]:
        try:
            project = self.projects.set_archived(project_id, True)
        except AccessServiceError as exc:
            return _failure("archive_project", exc)
        self._audit_project(project, "project_archived", user_id, name=project.name, slug=project.slug)
        return Ok(project)

    def restore_project(self, project_id: str, user_id: Optional[str] = None) -> Result[Project]:
        try:
            project = self.projects.set_archived(project_id, False)
        except AccessServiceError as exc:
            return _failure("restore_project", exc)
        self._audit_project(project, "project_restored", user_id, name=project.name, slug=project.slug)
        return Ok(project)

    def change_project_owner(
        self, project_id: str, owner_id: str, user_id: Optional[str] = None
    ) -> Result[Project]:
        try:
            owner_id = validate_user_id(owner_id, label="Owner ID", field="owner_id")
            project = self.projects.change_owner(project_id, owner_id)
        except AccessServiceError as exc:
            return _failure("change_project_owner", exc)
        self._audit_project(project, "project_owner_changed", user_id, owner_id=project.owner_id)
        return Ok(project)

    def delete_project(self, project_id: str, user_id: Optional[str] = None) -> Result[Dict[str, str]]:
        try:
            self.projects.delete_project(project_id)
        except AccessServiceError as exc:
            return _failure("delete_project", exc)
        self.audit.append(
            project_id,
            "project",
            "deleted",
            entity_id=project_id,
            user_id=user_id,
            metadata={"event": "project_deleted"},
        )
        return Ok({"id": project_id})

    def project_overview(self, project_id: str) -> Result[Dict[str, Any]]:
        try:
            return Ok(self.projects.overview(project_id))
        except AccessServiceError as exc:
            return _failure("project_overview", exc)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def list_audit_log(self, project_id: str, limit: Optional[int] = None) -> Result[List[AuditLog]]:
        try:
            limit = self.audit.page_size(limit)
            self.projects.get_project(project_id)
            return Ok(self.audit.list(project_id, limit))
        except AccessServiceError as exc:
            return _failure("list_audit_log", exc)
