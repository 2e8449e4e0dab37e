"""Audit log routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from access_service.api.deps import get_facade
from access_service.core.auth import require_caller_identity
from access_service.core.facade import AccessFacade
from access_service.core.result import unwrap
from access_service.models.audit import AuditLogEntryResponse

router = APIRouter(prefix="/api/v1/projects/{project_id}/audit-logs", tags=["audit"])


@router.get("", response_model=List[AuditLogEntryResponse])
async def list_audit_logs(
    project_id: str,
    limit: Optional[int] = Query(default=None, description="Page size (default 200)"),
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> List[AuditLogEntryResponse]:
    """Newest entries first."""
    entries = unwrap(facade.list_audit_log(project_id, limit))
    return [AuditLogEntryResponse(**entry.to_dict()) for entry in entries]
