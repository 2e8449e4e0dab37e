"""Append-only audit trail.

A failed audit write is logged and swallowed: the mutation it describes has
already been committed and its success does not depend on the audit row.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from access_service.core.exceptions import ValidationError
from access_service.core.persistence import store_operation
from access_service.db.models import AuditLog

logger = logging.getLogger(__name__)

ENTITY_TYPES = frozenset({"permission", "role", "api_key", "project"})
ACTIONS = frozenset({"created", "updated", "deleted", "granted", "revoked"})

DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 1000


class AuditLogger:
    """Owns ``audit_logs``; only ever inserts."""

    def __init__(
        self,
        db: Session,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def append(
        self,
        project_id: str,
        entity_type: str,
        action: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Insert one entry. Returns None when the write failed."""
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Invalid audit entity type '{entity_type}'")
        if action not in ACTIONS:
            raise ValueError(f"Invalid audit action '{action}'")

        entry = AuditLog(
            project_id=project_id,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            event_metadata=metadata or None,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "Failed to write audit log",
                exc_info=True,
                extra={
                    "project_id": project_id,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "audit_action": action,
                },
            )
            return None
        return entry

    def page_size(self, limit: Optional[int] = None) -> int:
        """Resolve a requested page size: default when unset, clamped to the maximum."""
        if limit is None:
            return self.default_page_size
        if limit < 1:
            raise ValidationError("Limit must be a positive number.", field="limit")
        return min(limit, self.max_page_size)

    def list(self, project_id: str, limit: Optional[int] = None) -> List[AuditLog]:
        """Return the project's entries, newest first."""
        limit = self.page_size(limit)
        with store_operation(self.db, "Failed to load audit log."):
            return (
                self.db.query(AuditLog)
                .filter(AuditLog.project_id == project_id)
                .order_by(AuditLog.created_at.desc())
                .limit(limit)
                .all()
            )
