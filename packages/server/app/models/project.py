"""Project and project membership models."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, id_field


class Project(TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    id: str = id_field("prj")
    org_id: str = Field(foreign_key="organizations.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    # Soft delete marker; projects are never removed
    deleted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class ProjectMembership(TimestampMixin, SQLModel, table=True):
    __tablename__ = "project_memberships"

    project_id: str = Field(foreign_key="projects.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True)
    org_membership_id: str = Field(
        foreign_key="organization_memberships.id", nullable=False, index=True
    )
    role: str = Field(nullable=False, default="VIEWER")  # OWNER | ADMIN | MEMBER | VIEWER
