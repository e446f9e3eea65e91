"""
Project endpoints: CRUD with soft delete, and the project's API keys.

Creating a project also issues its first key pair; the secret appears in
that response only.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.v1.deps import get_api_key_service, get_project_service
from app.services.api_keys import ApiKeyService
from app.services.projects import ProjectService
from tenancy_shared.schemas.api_keys import ApiKeyCreateRequest, ApiKeyIssued, ApiKeyRead
from tenancy_shared.schemas.projects import (
    ProjectCreate,
    ProjectCreated,
    ProjectRead,
    ProjectUpdate,
)

router = APIRouter()


@router.get("", response_model=List[ProjectRead])
async def list_projects(
    org_id: Optional[str] = Query(None),
    service: ProjectService = Depends(get_project_service),
):
    """List non-deleted projects, newest first, optionally for one org."""
    return await service.list_projects(org_id)


@router.post("", response_model=ProjectCreated, status_code=201)
async def create_project(
    body: ProjectCreate,
    service: ProjectService = Depends(get_project_service),
):
    return await service.create_project(body.name, body.org_id)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    return await service.get_project(project_id)


@router.put("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    service: ProjectService = Depends(get_project_service),
):
    return await service.update_project(project_id, body.name)


@router.delete("/{project_id}", status_code=204)
async def delete_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    await service.delete_project(project_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# API keys
# ---------------------------------------------------------------------------

@router.get("/{project_id}/api-keys", response_model=List[ApiKeyRead])
async def list_api_keys(
    project_id: str, service: ApiKeyService = Depends(get_api_key_service)
):
    return await service.list_for_project(project_id)


@router.post("/{project_id}/api-keys", response_model=ApiKeyIssued, status_code=201)
async def create_api_key(
    project_id: str,
    body: ApiKeyCreateRequest,
    service: ApiKeyService = Depends(get_api_key_service),
):
    return await service.create(project_id, note=body.note, expires_at=body.expires_at)
