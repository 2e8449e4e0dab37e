"""Role routes, including user grants."""

from typing import List

from fastapi import APIRouter, Depends

from access_service.api.deps import get_facade
from access_service.core.auth import require_caller_identity
from access_service.core.facade import AccessFacade
from access_service.core.result import unwrap
from access_service.models.access import RoleGrantResponse, RoleRequest, RoleResponse

router = APIRouter(prefix="/api/v1/projects/{project_id}/roles", tags=["roles"])


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> List[RoleResponse]:
    roles = unwrap(facade.list_roles(project_id))
    return [RoleResponse(**role.to_dict()) for role in roles]


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(
    project_id: str,
    body: RoleRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> RoleResponse:
    role = unwrap(
        facade.create_role(
            project_id,
            body.name,
            body.slug,
            description=body.description,
            permission_ids=body.permission_ids,
            is_system=body.is_system,
            user_id=user_id,
        )
    )
    return RoleResponse(**role.to_dict())


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    project_id: str,
    role_id: str,
    body: RoleRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> RoleResponse:
    """Update scalar fields and replace the role's permission set."""
    role = unwrap(
        facade.update_role(
            project_id,
            role_id,
            body.name,
            body.slug,
            description=body.description,
            permission_ids=body.permission_ids,
            is_system=body.is_system,
            user_id=user_id,
        )
    )
    return RoleResponse(**role.to_dict())


@router.delete("/{role_id}")
async def delete_role(
    project_id: str,
    role_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> dict:
    return unwrap(facade.delete_role(project_id, role_id, user_id=user_id))


@router.post("/{role_id}/grants/{grantee_id}", response_model=RoleGrantResponse, status_code=201)
async def grant_role(
    project_id: str,
    role_id: str,
    grantee_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> RoleGrantResponse:
    return RoleGrantResponse(
        **unwrap(facade.grant_role(project_id, role_id, grantee_id, user_id=user_id))
    )


@router.delete("/{role_id}/grants/{grantee_id}", response_model=RoleGrantResponse)
async def revoke_role_grant(
    project_id: str,
    role_id: str,
    grantee_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> RoleGrantResponse:
    return RoleGrantResponse(
        **unwrap(facade.revoke_role_grant(project_id, role_id, grantee_id, user_id=user_id))
    )
