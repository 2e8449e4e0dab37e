"""Project request/response models."""

from pydantic import BaseModel


class CreateProjectRequest(BaseModel):
    name: str
    slug: str
    description: str | None = None


class UpdateProjectRequest(CreateProjectRequest):
    status: str = "active"


class ChangeOwnerRequest(BaseModel):
    owner_id: str


class ProjectResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    slug: str
    description: str | None
    status: str
    created_at: str | None
    updated_at: str | None
    archived_at: str | None


class ProjectOverviewResponse(BaseModel):
    total_permissions: int
    enabled_permissions: int
    total_roles: int
    total_access_grants: int
    total_api_keys: int
    total_usage_count: int
    last_activity_at: str | None
