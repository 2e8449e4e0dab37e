"""Project records: the owners of every key, role, permission and audit entry."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from access_service.core.exceptions import ConflictError, NotFoundError
from access_service.core.persistence import store_operation
from access_service.core.validation import clean_project, validate_project_status, validate_user_id
from access_service.db.models import ApiKey, AuditLog, Permission, Project, Role, UserRole

logger = logging.getLogger(__name__)


class ProjectStore:
    """Owns ``projects``. Soft-deleted rows (``deleted_at`` set) are invisible."""

    def __init__(self, db: Session):
        self.db = db

    def _live(self):
        return self.db.query(Project).filter(Project.deleted_at.is_(None))

    def get_project(self, project_id: str) -> Project:
        with store_operation(self.db, "Failed to load project."):
            project = self._live().filter(Project.id == project_id).first()
        if project is None:
            raise NotFoundError("Project not found.", entity_type="project")
        return project

    def get_project_by_slug(self, slug: str) -> Project:
        with store_operation(self.db, "Failed to load project."):
            project = self._live().filter(Project.slug == (slug or "").strip().lower()).first()
        if project is None:
            raise NotFoundError("Project not found.", entity_type="project")
        return project

    def list_projects(self, owner_id: Optional[str] = None) -> List[Project]:
        with store_operation(self.db, "Failed to load projects."):
            query = self._live()
            if owner_id:
                query = query.filter(Project.owner_id == owner_id)
            return query.order_by(Project.created_at.desc()).all()

    def _slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        with store_operation(self.db, "Failed to validate project slug."):
            query = self._live().filter(Project.slug == slug)
            if exclude_id:
                query = query.filter(Project.id != exclude_id)
            return query.first() is not None

    def create_project(
        self, owner_id: str, name: str, slug: str, description: Optional[str] = None
    ) -> Project:
        clean_name, clean_slug, clean_description = clean_project(name, slug, description)
        if self._slug_taken(clean_slug):
            raise ConflictError("Project slug already exists. Please choose another one.")
        now = datetime.now(timezone.utc)
        project = Project(
            owner_id=owner_id,
            name=clean_name,
            slug=clean_slug,
            description=clean_description,
            status="active",
            created_at=now,
            updated_at=now,
        )
        with store_operation(self.db, "Failed to create project."):
            self.db.add(project)
            self.db.commit()
            self.db.refresh(project)
        return project

    def update_settings(
        self,
        project_id: str,
        name: str,
        slug: str,
        description: Optional[str],
        status: str,
    ) -> Project:
        clean_name, clean_slug, clean_description = clean_project(name, slug, description)
        status = validate_project_status(status)
        project = self.get_project(project_id)
        if self._slug_taken(clean_slug, exclude_id=project_id):
            raise ConflictError("Project slug already exists.")

        now = datetime.now(timezone.utc)
        with store_operation(self.db, "Failed to update project settings."):
            project.name = clean_name
            project.slug = clean_slug
            project.description = clean_description
            project.status = status
            # Keep the original archive timestamp when already archived
            project.archived_at = (project.archived_at or now) if status == "archived" else None
            project.updated_at = now
            self.db.commit()
            self.db.refresh(project)
        return project

    def set_archived(self, project_id: str, archived: bool) -> Project:
        project = self.get_project(project_id)
        now = datetime.now(timezone.utc)
        with store_operation(
            self.db, "Failed to archive project." if archived else "Failed to restore project."
        ):
            project.status = "archived" if archived else "active"
            project.archived_at = now if archived else None
            project.updated_at = now
            self.db.commit()
            self.db.refresh(project)
        return project

    def change_owner(self, project_id: str, owner_id: str) -> Project:
        owner_id = validate_user_id(owner_id, label="Owner ID", field="owner_id")
        project = self.get_project(project_id)
        with store_operation(self.db, "Failed to update project owner."):
            project.owner_id = owner_id
            project.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(project)
        return project

    def delete_project(self, project_id: str) -> str:
        """Hard delete; keys, roles, permissions and grants cascade with it."""
        project = self.get_project(project_id)
        with store_operation(self.db, "Failed to delete project."):
            self.db.delete(project)
            self.db.commit()
        return project_id

    def overview(self, project_id: str) -> Dict[str, Any]:
        """Headline counts for the project dashboard."""
        self.get_project(project_id)
        with store_operation(self.db, "Failed to load project overview."):
            total_permissions = (
                self.db.query(func.count(Permission.id))
                .filter(Permission.project_id == project_id)
                .scalar()
            )
            enabled_permissions = (
                self.db.query(func.count(Permission.id))
                .filter(Permission.project_id == project_id, Permission.enabled.is_(True))
                .scalar()
            )
            total_usage = (
                self.db.query(func.coalesce(func.sum(Permission.usage_count), 0))
                .filter(Permission.project_id == project_id)
                .scalar()
            )
            total_roles = (
                self.db.query(func.count(Role.id)).filter(Role.project_id == project_id).scalar()
            )
            total_grants = (
                self.db.query(func.count(UserRole.id))
                .filter(UserRole.project_id == project_id)
                .scalar()
            )
            total_api_keys = (
                self.db.query(func.count(ApiKey.id)).filter(ApiKey.project_id == project_id).scalar()
            )
            last_activity = (
                self.db.query(func.max(AuditLog.created_at))
                .filter(AuditLog.project_id == project_id)
                .scalar()
            )
        return {
            "total_permissions": total_permissions or 0,
            "enabled_permissions": enabled_permissions or 0,
            "total_roles": total_roles or 0,
            "total_access_grants": total_grants or 0,
            "total_api_keys": total_api_keys or 0,
            "total_usage_count": int(total_usage or 0),
            "last_activity_at": last_activity.isoformat() if last_activity else None,
        }
