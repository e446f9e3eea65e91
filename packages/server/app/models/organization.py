"""Organization and organization membership models."""

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, id_field


class Organization(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    id: str = id_field("org")
    name: str = Field(nullable=False, index=True)


class OrganizationMembership(TimestampMixin, SQLModel, table=True):
    __tablename__ = "organization_memberships"
    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_organization_memberships_org_user"),
    )

    id: str = id_field("om")
    org_id: str = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: str = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="VIEWER")  # OWNER | ADMIN | VIEWER | NONE
