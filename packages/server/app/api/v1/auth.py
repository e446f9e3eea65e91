"""
Tenant authentication endpoint.

Clients present a project key pair and get back the project it belongs to.
Unknown, expired and mismatched keys all produce the same 401.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import get_verified_project
from tenancy_shared.schemas.api_keys import VerifiedProject

router = APIRouter()


@router.get("/project", response_model=VerifiedProject)
async def verify_project_key(project: VerifiedProject = Depends(get_verified_project)):
    return project
