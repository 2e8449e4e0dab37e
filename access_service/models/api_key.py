"""API key request/response models."""

from pydantic import BaseModel, Field


class GenerateKeyRequest(BaseModel):
    name: str = Field(..., description="Human label for this key, unique per project")
    description: str | None = Field(default=None, description="Optional note")


class RotateKeyRequest(BaseModel):
    name: str = Field(..., description="Name for the replacement key")
    description: str | None = None


class KeyInfoResponse(BaseModel):
    id: str
    project_id: str
    name: str
    description: str | None
    status: str
    usage_count: int
    last_used_at: str | None
    created_at: str | None
    updated_at: str | None


class KeySecretResponse(BaseModel):
    """Returned by generate and rotate: the only time the secret is sent unprompted."""

    raw_key: str
    key: KeyInfoResponse
    replaced_id: str | None = None
    message: str = "Store this key securely. It will not be shown again."


class RevealKeyResponse(BaseModel):
    id: str
    name: str
    raw_key: str


class AuthenticatedKeyResponse(BaseModel):
    key_id: str
    project_id: str
