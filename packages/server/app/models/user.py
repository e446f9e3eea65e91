"""User model plus the identity records that hang off it."""

from datetime import datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, id_field


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: str = id_field("usr")
    name: Optional[str] = None
    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: Optional[str] = Field(default=None)  # bcrypt hash
    image: Optional[str] = None
    admin: bool = Field(default=False, nullable=False)
    feature_flags: List[str] = Field(default_factory=list, sa_type=sa.JSON, nullable=False)
    email_verified: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Account(SQLModel, table=True):
    """Linked external identity (OAuth provider account)."""

    __tablename__ = "accounts"

    id: str = id_field("acc")
    user_id: str = Field(foreign_key="users.id", nullable=False, index=True)
    provider: str = Field(nullable=False)
    provider_account_id: str = Field(nullable=False)


class UserSession(SQLModel, table=True):
    """Login session belonging to a user."""

    __tablename__ = "sessions"

    id: str = id_field("ses")
    user_id: str = Field(foreign_key="users.id", nullable=False, index=True)
    session_token: str = Field(unique=True, nullable=False)
    expires: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
