"""Audit log response model."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    id: str
    project_id: str
    user_id: Optional[str]
    entity_type: str
    entity_id: Optional[str]
    action: str
    metadata: Optional[Dict[str, Any]]
    created_at: Optional[str]
