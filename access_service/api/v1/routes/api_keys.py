"""API key management routes.

The raw key is returned by generate and rotate; afterwards it is available only
through the explicit reveal endpoint.
"""

from typing import List

from fastapi import APIRouter, Depends

from access_service.api.deps import get_facade
from access_service.core.auth import bearer_secret, require_caller_identity
from access_service.core.facade import AccessFacade
from access_service.core.result import unwrap
from access_service.models.api_key import (
    AuthenticatedKeyResponse,
    GenerateKeyRequest,
    KeyInfoResponse,
    KeySecretResponse,
    RevealKeyResponse,
    RotateKeyRequest,
)

router = APIRouter(prefix="/api/v1/projects/{project_id}/api-keys", tags=["api-keys"])
auth_router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("", response_model=KeySecretResponse, status_code=201, summary="Generate an API key")
async def generate_key(
    project_id: str,
    body: GenerateKeyRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> KeySecretResponse:
    generated = unwrap(
        facade.generate_credential(project_id, body.name, body.description, user_id=user_id)
    )
    return KeySecretResponse(
        raw_key=generated.raw_secret, key=KeyInfoResponse(**generated.record.to_dict())
    )


@router.get("", response_model=List[KeyInfoResponse], summary="List API keys")
async def list_keys(
    project_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> List[KeyInfoResponse]:
    """List keys with metadata (no secrets returned)."""
    records = unwrap(facade.list_credentials(project_id))
    return [KeyInfoResponse(**record.to_dict()) for record in records]


@router.post("/{key_id}/rotate", response_model=KeySecretResponse, summary="Rotate an API key")
async def rotate_key(
    project_id: str,
    key_id: str,
    body: RotateKeyRequest,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> KeySecretResponse:
    """Replace the key with a new id and secret; the old secret stops working."""
    rotated = unwrap(
        facade.rotate_credential(project_id, key_id, body.name, body.description, user_id=user_id)
    )
    return KeySecretResponse(
        raw_key=rotated.raw_secret,
        key=KeyInfoResponse(**rotated.record.to_dict()),
        replaced_id=rotated.replaced_id,
    )


@router.get("/{key_id}/reveal", response_model=RevealKeyResponse, summary="Reveal an API key")
async def reveal_key(
    project_id: str,
    key_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> RevealKeyResponse:
    revealed = unwrap(facade.reveal_credential(project_id, key_id))
    return RevealKeyResponse(id=revealed.id, name=revealed.name, raw_key=revealed.raw_secret)


@router.post("/{key_id}/revoke", response_model=KeyInfoResponse, summary="Revoke an API key")
async def revoke_key(
    project_id: str,
    key_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> KeyInfoResponse:
    record = unwrap(facade.revoke_credential(project_id, key_id, user_id=user_id))
    return KeyInfoResponse(**record.to_dict())


@router.delete("/{key_id}", summary="Delete an API key")
async def delete_key(
    project_id: str,
    key_id: str,
    user_id: str = Depends(require_caller_identity),
    facade: AccessFacade = Depends(get_facade),
) -> dict:
    return unwrap(facade.delete_credential(project_id, key_id, user_id=user_id))


@auth_router.post("/verify", response_model=AuthenticatedKeyResponse, summary="Verify a Bearer API key")
async def verify_key(
    raw_secret: str = Depends(bearer_secret),
    facade: AccessFacade = Depends(get_facade),
) -> AuthenticatedKeyResponse:
    """Authenticate the Bearer secret and record one use of the key."""
    authenticated = unwrap(facade.authenticate(raw_secret))
    return AuthenticatedKeyResponse(
        key_id=authenticated.key_id, project_id=authenticated.project_id
    )
