"""User management schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .common import Pagination


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserCreateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: EmailStr
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)


class UserUpdate(BaseModel):
    """Partial update. Only fields explicitly set are written."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    image: Optional[str] = None
    feature_flags: Optional[List[str]] = None
    admin: Optional[bool] = None


# Fixed column order used when applying a UserUpdate
USER_UPDATE_FIELDS: tuple[str, ...] = ("name", "email", "image", "feature_flags", "admin")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    admin: bool = False
    feature_flags: List[str] = Field(default_factory=list)
    email_verified: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination
