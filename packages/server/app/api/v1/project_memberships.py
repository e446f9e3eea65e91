"""
Project membership endpoints.

Adding a member who is not yet in the project's organization also joins
them to it as VIEWER.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.v1.deps import get_project_membership_service
from app.services.project_memberships import ProjectMembershipService
from tenancy_shared.schemas.projects import (
    BatchResult,
    ProjectMemberAdd,
    ProjectMemberBatchAdd,
    ProjectMemberRead,
    ProjectMemberUpdate,
)

router = APIRouter()


@router.get("", response_model=List[ProjectMemberRead])
async def list_members(
    project_id: str,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    return await service.list_members(project_id)


@router.post("", response_model=ProjectMemberRead, status_code=201)
async def add_member(
    project_id: str,
    body: ProjectMemberAdd,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    return await service.add_member(project_id, body.user_id, body.role)


@router.post("/batch", response_model=BatchResult)
async def add_members_batch(
    project_id: str,
    body: ProjectMemberBatchAdd,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    """Add several members; each succeeds or fails on its own."""
    return await service.add_batch_members(
        project_id, [member.model_dump() for member in body.members]
    )


@router.get("/{user_id}", response_model=ProjectMemberRead)
async def get_member(
    project_id: str,
    user_id: str,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    return await service.get_member(project_id, user_id)


@router.put("/{user_id}", response_model=ProjectMemberRead)
async def update_member(
    project_id: str,
    user_id: str,
    body: ProjectMemberUpdate,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    return await service.update_member(project_id, user_id, body.role)


@router.delete("/{user_id}", status_code=204)
async def remove_member(
    project_id: str,
    user_id: str,
    service: ProjectMembershipService = Depends(get_project_membership_service),
):
    await service.remove_member(project_id, user_id)
    return Response(status_code=204)
