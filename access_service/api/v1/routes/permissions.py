"""Permission routes."""

from typing import List

from fastapi import APIRouter, Depends

from access_service.api.deps import get_facade
from access_service.core.auth import require_caller_identity
from access_service.core.facade import AccessFacade
from access_service.core.result import unwrap
from access_service.models.access import (
    PermissionRequest,
    PermissionResponse,
    PermissionToggleRequest,
    PermissionUpdateRequest,
)

router = APIRouter(prefix="/api/v1/projects/{project_id}/permissions", tags=["permissions"])


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> List[PermissionResponse]:
    permissions = unwrap(facade.list_permissions(project_id))
    return [PermissionResponse(**permission.to_dict()) for permission in permissions]


@router.post("", response_model=PermissionResponse, status_code=201)
async def create_permission(
    project_id: str,
    body: PermissionRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> PermissionResponse:
    permission = unwrap(
        facade.create_permission(
            project_id,
            body.name,
            body.slug,
            description=body.description,
            risk_level=body.risk_level,
            user_id=user_id,
        )
    )
    return PermissionResponse(**permission.to_dict())


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    project_id: str,
    permission_id: str,
    body: PermissionUpdateRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> PermissionResponse:
    permission = unwrap(
        facade.update_permission(
            project_id,
            permission_id,
            body.name,
            body.slug,
            description=body.description,
            risk_level=body.risk_level,
            enabled=body.enabled,
            user_id=user_id,
        )
    )
    return PermissionResponse(**permission.to_dict())


@router.patch("/{permission_id}/enabled", response_model=PermissionResponse)
async def toggle_permission(
    project_id: str,
    permission_id: str,
    body: PermissionToggleRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> PermissionResponse:
    permission = unwrap(
        facade.toggle_permission(project_id, permission_id, body.enabled, user_id=user_id)
    )
    return PermissionResponse(**permission.to_dict())


@router.delete("/{permission_id}")
async def delete_permission(
    project_id: str,
    permission_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> dict:
    return unwrap(facade.delete_permission(project_id, permission_id, user_id=user_id))
