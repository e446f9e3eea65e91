"""API key schemas.

The full secret key only ever appears in ``ApiKeyIssued`` and ``ApiKeyPair``,
which are produced by creation and regeneration. Every read path returns
``ApiKeyRead``/``ApiKeyDetail``, which carry the display fragment only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ApiKeyCreateRequest(BaseModel):
    note: Optional[str] = Field(default=None, max_length=500)
    expires_at: Optional[datetime] = None


class ApiKeyRegenerateRequest(BaseModel):
    """Omitting ``expires_at`` keeps the current expiry; ``null`` clears it."""
    expires_at: Optional[datetime] = None


class ApiKeyExpirationUpdate(BaseModel):
    expires_at: Optional[datetime]


class ApiKeyNoteUpdate(BaseModel):
    note: Optional[str] = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ApiKeyPair(BaseModel):
    public_key: str
    secret_key: str  # shown ONCE


class ApiKeyRead(BaseModel):
    id: str
    project_id: str
    public_key: str
    display_secret_key: str
    note: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApiKeyDetail(ApiKeyRead):
    project_name: str


class ApiKeyIssued(ApiKeyRead):
    """Creation/regeneration response with the one-time secret."""
    secret_key: str


class ExpiredCleanupResponse(BaseModel):
    deleted: int


class VerifiedProject(BaseModel):
    """Identity of the project a key pair authenticates as."""
    id: str
    org_id: str
    name: str
