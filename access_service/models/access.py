"""Permission and role request/response models."""

from typing import List

from pydantic import BaseModel, Field


class PermissionRequest(BaseModel):
    name: str
    slug: str
    description: str | None = None
    risk_level: str = Field(default="low", description="low | medium | high")


class PermissionUpdateRequest(PermissionRequest):
    enabled: bool = True


class PermissionToggleRequest(BaseModel):
    enabled: bool


class PermissionResponse(BaseModel):
    id: str
    project_id: str
    name: str
    slug: str
    description: str | None
    enabled: bool
    risk_level: str
    is_system: bool
    usage_count: int
    last_used_at: str | None
    created_at: str | None
    updated_at: str | None


class RoleRequest(BaseModel):
    name: str
    slug: str
    description: str | None = None
    permission_ids: List[str] = Field(default_factory=list)
    is_system: bool = False


class RoleResponse(BaseModel):
    id: str
    project_id: str
    name: str
    slug: str
    description: str | None
    is_system: bool
    permission_ids: List[str]
    user_count: int
    created_at: str | None
    updated_at: str | None


class RoleGrantResponse(BaseModel):
    role_id: str
    user_id: str
