"""Project routes."""

from typing import List

from fastapi import APIRouter, Depends

from access_service.api.deps import get_facade
from access_service.core.auth import require_caller_identity
from access_service.core.facade import AccessFacade
from access_service.core.result import unwrap
from access_service.models.project import (
    ChangeOwnerRequest,
    CreateProjectRequest,
    ProjectOverviewResponse,
    ProjectResponse,
    UpdateProjectRequest,
)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    body: CreateProjectRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    """Create a project owned by the caller."""
    project = unwrap(facade.create_project(user_id, body.name, body.slug, body.description))
    return ProjectResponse(**project.to_dict())


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> List[ProjectResponse]:
    """Projects owned by the caller, newest first."""
    return [ProjectResponse(**p.to_dict()) for p in unwrap(facade.list_projects(user_id))]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    return ProjectResponse(**unwrap(facade.get_project(project_id)).to_dict())


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: UpdateProjectRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    project = unwrap(
        facade.update_project_settings(
            project_id, body.name, body.slug, body.description, body.status, user_id=user_id
        )
    )
    return ProjectResponse(**project.to_dict())


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    return ProjectResponse(**unwrap(facade.archive_project(project_id, user_id=user_id)).to_dict())


@router.post("/{project_id}/restore", response_model=ProjectResponse)
async def restore_project(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    return ProjectResponse(**unwrap(facade.restore_project(project_id, user_id=user_id)).to_dict())


@router.put("/{project_id}/owner", response_model=ProjectResponse)
async def change_owner(
    project_id: str,
    body: ChangeOwnerRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectResponse:
    project = unwrap(facade.change_project_owner(project_id, body.owner_id, user_id=user_id))
    return ProjectResponse(**project.to_dict())


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> dict:
    return unwrap(facade.delete_project(project_id, user_id=user_id))


@router.get("/{project_id}/overview", response_model=ProjectOverviewResponse)
async def project_overview(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> ProjectOverviewResponse:
    return ProjectOverviewResponse(**unwrap(facade.project_overview(project_id)))
