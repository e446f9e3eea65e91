"""
Organization API endpoints.

GET    /api/v1/organizations                            - List organizations
POST   /api/v1/organizations                            - Create an org with its first OWNER
GET    /api/v1/organizations/{org_id}                   - Get org details
PUT    /api/v1/organizations/{org_id}                   - Rename an org
GET    /api/v1/organizations/{org_id}/members           - List members with profiles
POST   /api/v1/organizations/{org_id}/members           - Add a member
PUT    /api/v1/organizations/{org_id}/members/{user_id} - Change a member's role
DELETE /api/v1/organizations/{org_id}/members/{user_id} - Remove a member (and their project memberships)
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.v1.deps import get_organization_service
from app.services.organizations import OrganizationService
from tenancy_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgMemberAddRequest,
    OrgMemberRead,
    OrgMemberUpdateRequest,
    OrgMembershipRead,
    OrgResponse,
    OrgUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=List[OrgResponse])
async def list_orgs(service: OrganizationService = Depends(get_organization_service)):
    return await service.list_organizations()


@router.post("", response_model=OrgResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    service: OrganizationService = Depends(get_organization_service),
):
    """Create an organization. ``user_id`` becomes its OWNER."""
    return await service.create(body.name, body.user_id)


@router.get("/{org_id}", response_model=OrgResponse)
async def get_org(org_id: str, service: OrganizationService = Depends(get_organization_service)):
    return await service.get_organization(org_id)


@router.put("/{org_id}", response_model=OrgResponse)
async def update_org(
    org_id: str,
    body: OrgUpdateRequest,
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.update_organization(org_id, body.name)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

@router.get("/{org_id}/members", response_model=List[OrgMemberRead])
async def list_members(
    org_id: str, service: OrganizationService = Depends(get_organization_service)
):
    return await service.list_members(org_id)


@router.post("/{org_id}/members", response_model=OrgMembershipRead, status_code=201)
async def add_member(
    org_id: str,
    body: OrgMemberAddRequest,
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.add_member(org_id, body.user_id, body.role)


@router.put("/{org_id}/members/{user_id}", response_model=OrgMembershipRead)
async def update_member(
    org_id: str,
    user_id: str,
    body: OrgMemberUpdateRequest,
    service: OrganizationService = Depends(get_organization_service),
):
    """Change a member's role. Demoting the last OWNER is rejected."""
    return await service.update_member(org_id, user_id, body.role)


@router.delete("/{org_id}/members/{user_id}", status_code=204)
async def remove_member(
    org_id: str,
    user_id: str,
    service: OrganizationService = Depends(get_organization_service),
):
    await service.remove_member(org_id, user_id)
    return Response(status_code=204)
