"""API key model.

Only the salted hash of the secret is stored; the plaintext secret exists
solely in the create/regenerate response.
"""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, id_field


class ApiKey(TimestampMixin, SQLModel, table=True):
    __tablename__ = "api_keys"

    id: str = id_field("key")
    project_id: str = Field(foreign_key="projects.id", nullable=False, index=True)
    public_key: str = Field(unique=True, nullable=False, index=True)
    hashed_secret_key: str = Field(nullable=False)
    display_secret_key: str = Field(nullable=False)
    note: Optional[str] = None
    expires_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True), index=True)
    last_used_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
