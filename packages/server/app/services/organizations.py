"""
Organization service: org CRUD and organization membership invariants.

Every organization has at least one OWNER from the moment it exists:
creation inserts the org and its OWNER membership in one transaction, and
demoting or removing the last OWNER is rejected.
"""

from __future__ import annotations

from typing import Optional, Union

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import Database
from app.core.errors import BusinessRuleError, ConflictError, NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.organization import Organization, OrganizationMembership
from app.models.project import Project, ProjectMembership
from app.models.user import User
from app.services.roles import OWNER, coerce_role, guard_last_owner, is_last_owner

from tenancy_shared.schemas.common import OrgRole
from tenancy_shared.schemas.organizations import OrgMemberRead, OrgMembershipRead

log = structlog.get_logger()


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Organization name is required")
    return cleaned


async def get_org_membership(
    session: AsyncSession, org_id: str, user_id: str
) -> Optional[OrganizationMembership]:
    result = await session.execute(
        select(OrganizationMembership).where(
            OrganizationMembership.org_id == org_id,
            OrganizationMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


class OrganizationService:
    def __init__(self, db: Database):
        self.db = db

    # -----------------------------------------------------------------------
    # Organizations
    # -----------------------------------------------------------------------

    async def list_organizations(self) -> list[Organization]:
        return await self.db.scalars(
            select(Organization).order_by(Organization.created_at.desc())
        )

    async def get_organization(self, org_id: str) -> Organization:
        org = await self.db.scalar(select(Organization).where(Organization.id == org_id))
        if not org:
            raise NotFoundError("Organization", id=org_id)
        return org

    async def create(self, name: Optional[str], owner_user_id: Optional[str]) -> Organization:
        """Create an org together with its OWNER membership."""
        cleaned = _clean_name(name)
        if not owner_user_id:
            raise BusinessRuleError("A user id is required to create an organization")

        async def _create(session: AsyncSession) -> Organization:
            if await session.get(User, owner_user_id) is None:
                raise NotFoundError("User", id=owner_user_id)

            org = Organization(name=cleaned)
            session.add(org)
            await session.flush()

            session.add(
                OrganizationMembership(
                    org_id=org.id, user_id=owner_user_id, role=OrgRole.OWNER.value
                )
            )
            await session.flush()

            log.info("org.created", org_id=org.id, owner=owner_user_id)
            return org

        return await self.db.transaction(_create)

    async def update_organization(self, org_id: str, name: Optional[str]) -> Organization:
        cleaned = _clean_name(name)

        async def _update(session: AsyncSession) -> Organization:
            org = await session.get(Organization, org_id)
            if not org:
                raise NotFoundError("Organization", id=org_id)
            org.name = cleaned
            org.updated_at = utcnow()
            session.add(org)
            await session.flush()
            log.info("org.updated", org_id=org_id)
            return org

        return await self.db.transaction(_update)

    # -----------------------------------------------------------------------
    # Membership
    # -----------------------------------------------------------------------

    async def list_members(self, org_id: str) -> list[OrgMemberRead]:
        async def _list(session: AsyncSession) -> list[OrgMemberRead]:
            if await session.get(Organization, org_id) is None:
                raise NotFoundError("Organization", id=org_id)
            result = await session.execute(
                select(OrganizationMembership, User)
                .join(User, User.id == OrganizationMembership.user_id)
                .where(OrganizationMembership.org_id == org_id)
                .order_by(OrganizationMembership.created_at.desc())
            )
            return [
                OrgMemberRead(
                    **OrgMembershipRead.model_validate(om).model_dump(),
                    name=user.name,
                    email=user.email,
                    image=user.image,
                )
                for om, user in result.all()
            ]

        return await self.db.transaction(_list)

    async def add_member(
        self, org_id: str, user_id: str, role: Union[str, OrgRole] = OrgRole.VIEWER
    ) -> OrgMembershipRead:
        parsed = coerce_role(OrgRole, role)

        async def _add(session: AsyncSession) -> OrgMembershipRead:
            if await session.get(Organization, org_id) is None:
                raise NotFoundError("Organization", id=org_id)
            if await session.get(User, user_id) is None:
                raise NotFoundError("User", id=user_id)
            if await get_org_membership(session, org_id, user_id):
                raise ConflictError(
                    "User is already a member of this organization",
                    {"org_id": org_id, "user_id": user_id},
                )

            membership = OrganizationMembership(org_id=org_id, user_id=user_id, role=parsed.value)
            session.add(membership)
            await session.flush()

            log.info("org.member_added", org_id=org_id, user_id=user_id, role=parsed.value)
            return OrgMembershipRead.model_validate(membership)

        return await self.db.transaction(_add)

    async def update_member(
        self, org_id: str, user_id: str, role: Union[str, OrgRole]
    ) -> OrgMembershipRead:
        parsed = coerce_role(OrgRole, role)

        async def _update(session: AsyncSession) -> OrgMembershipRead:
            membership = await get_org_membership(session, org_id, user_id)
            if not membership:
                raise NotFoundError("Membership", org_id=org_id, user_id=user_id)

            if parsed is not OrgRole.OWNER:
                await guard_last_owner(
                    session,
                    membership,
                    OrganizationMembership,
                    OrganizationMembership.org_id,
                    org_id,
                    scope="organization",
                    action="demote",
                )

            membership.role = parsed.value
            membership.updated_at = utcnow()
            session.add(membership)
            await session.flush()

            log.info("org.member_updated", org_id=org_id, user_id=user_id, role=parsed.value)
            return OrgMembershipRead.model_validate(membership)

        return await self.db.transaction(_update)

    async def remove_member(self, org_id: str, user_id: str) -> None:
        """Remove a member and every project membership it authorized."""

        async def _remove(session: AsyncSession) -> None:
            membership = await get_org_membership(session, org_id, user_id)
            if not membership:
                raise NotFoundError("Membership", org_id=org_id, user_id=user_id)

            await guard_last_owner(
                session,
                membership,
                OrganizationMembership,
                OrganizationMembership.org_id,
                org_id,
                scope="organization",
                action="remove",
                allow_sole_member=True,
            )

            # Each project this membership owns alone must stay owned
            result = await session.execute(
                select(ProjectMembership)
                .join(Project, Project.id == ProjectMembership.project_id)
                .where(
                    ProjectMembership.org_membership_id == membership.id,
                    ProjectMembership.role == OWNER,
                    Project.deleted_at.is_(None),
                )
            )
            orphaned = [
                pm.project_id
                for pm in result.scalars().all()
                if await is_last_owner(
                    session,
                    pm,
                    ProjectMembership,
                    ProjectMembership.project_id,
                    pm.project_id,
                    allow_sole_member=True,
                )
            ]
            if orphaned:
                raise BusinessRuleError(
                    "Cannot remove the last owner of a project that still has members",
                    {"org_id": org_id, "user_id": user_id, "project_ids": orphaned},
                )

            cascaded = await session.execute(
                delete(ProjectMembership).where(
                    ProjectMembership.org_membership_id == membership.id
                )
            )
            await session.delete(membership)
            await session.flush()

            log.info(
                "org.member_removed",
                org_id=org_id,
                user_id=user_id,
                project_memberships_removed=cascaded.rowcount,
            )

        await self.db.transaction(_remove)
