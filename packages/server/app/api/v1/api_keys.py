"""
API key endpoints: inspection, rotation, expiry and purge.

Only ``POST /{key_id}/regenerate`` returns a secret; every other response
carries the display fragment.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.v1.deps import get_api_key_service
from app.services.api_keys import UNSET, ApiKeyService
from tenancy_shared.schemas.api_keys import (
    ApiKeyDetail,
    ApiKeyExpirationUpdate,
    ApiKeyIssued,
    ApiKeyNoteUpdate,
    ApiKeyRead,
    ApiKeyRegenerateRequest,
    ExpiredCleanupResponse,
)

router = APIRouter()


@router.get("/expired", response_model=List[ApiKeyRead])
async def list_expired(service: ApiKeyService = Depends(get_api_key_service)):
    return await service.get_expired()


@router.delete("/expired", response_model=ExpiredCleanupResponse)
async def purge_expired(service: ApiKeyService = Depends(get_api_key_service)):
    return ExpiredCleanupResponse(deleted=await service.cleanup_expired())


@router.get("/{key_id}", response_model=ApiKeyDetail)
async def get_api_key(key_id: str, service: ApiKeyService = Depends(get_api_key_service)):
    return await service.get(key_id)


@router.post("/{key_id}/regenerate", response_model=ApiKeyIssued)
async def regenerate_api_key(
    key_id: str,
    body: ApiKeyRegenerateRequest = ApiKeyRegenerateRequest(),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Rotate the key material. An omitted ``expires_at`` keeps the current expiry."""
    expires_at = body.expires_at if "expires_at" in body.model_fields_set else UNSET
    return await service.regenerate(key_id, expires_at=expires_at)


@router.put("/{key_id}/expiration", response_model=ApiKeyRead)
async def update_expiration(
    key_id: str,
    body: ApiKeyExpirationUpdate,
    service: ApiKeyService = Depends(get_api_key_service),
):
    return await service.update_expiration(key_id, body.expires_at)


@router.put("/{key_id}/note", response_model=ApiKeyRead)
async def update_note(
    key_id: str,
    body: ApiKeyNoteUpdate,
    service: ApiKeyService = Depends(get_api_key_service),
):
    return await service.update_note(key_id, body.note)


@router.delete("/{key_id}", status_code=204)
async def delete_api_key(key_id: str, service: ApiKeyService = Depends(get_api_key_service)):
    await service.delete(key_id)
    return Response(status_code=204)
