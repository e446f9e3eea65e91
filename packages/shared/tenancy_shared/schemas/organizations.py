"""
Organization-related Pydantic schemas shared between server and clients.

Covers: org CRUD request/response and organization membership payloads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import OrgRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Organization display name")
    user_id: str = Field(..., min_length=1, description="User who becomes the first OWNER")


class OrgUpdateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)


class OrgMemberAddRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: OrgRole = OrgRole.VIEWER


class OrgMemberUpdateRequest(BaseModel):
    role: OrgRole


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: str
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgMembershipRead(BaseModel):
    """A bare membership row."""
    id: str
    org_id: str
    user_id: str
    role: OrgRole
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrgMemberRead(OrgMembershipRead):
    """Membership joined with the member's profile."""
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None
