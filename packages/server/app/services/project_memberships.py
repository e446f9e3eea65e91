"""
Project membership service.

Membership in a project implies membership in its organization: adding a
project member who has no organization membership creates one (role VIEWER)
in the same transaction, and the project membership keeps a reference to the
organization membership that authorized it. Each project with members keeps
at least one OWNER.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import Database
from app.core.errors import ConflictError, NotFoundError, ServiceError, ValidationError
from app.models.base import utcnow
from app.models.organization import OrganizationMembership
from app.models.project import ProjectMembership
from app.models.user import User
from app.services.api_keys import get_active_project
from app.services.organizations import get_org_membership
from app.services.roles import coerce_role, guard_last_owner

from tenancy_shared.schemas.common import IMPLICIT_ORG_ROLE, ProjectRole
from tenancy_shared.schemas.projects import BatchMemberError, BatchResult, ProjectMemberRead

log = structlog.get_logger()


def _member_read(membership: ProjectMembership, user: User) -> ProjectMemberRead:
    return ProjectMemberRead(
        project_id=membership.project_id,
        user_id=membership.user_id,
        role=membership.role,
        created_at=membership.created_at,
        updated_at=membership.updated_at,
        name=user.name,
        email=user.email,
        image=user.image,
    )


async def _get_membership(
    session: AsyncSession, project_id: str, user_id: str
) -> Optional[ProjectMembership]:
    return await session.get(ProjectMembership, (project_id, user_id))


class ProjectMembershipService:
    def __init__(self, db: Database):
        self.db = db

    async def list_members(self, project_id: str) -> list[ProjectMemberRead]:
        async def _list(session: AsyncSession) -> list[ProjectMemberRead]:
            await get_active_project(session, project_id)
            result = await session.execute(
                select(ProjectMembership, User)
                .join(User, User.id == ProjectMembership.user_id)
                .where(ProjectMembership.project_id == project_id)
                .order_by(ProjectMembership.created_at.desc())
            )
            return [_member_read(pm, user) for pm, user in result.all()]

        return await self.db.transaction(_list)

    async def get_member(self, project_id: str, user_id: str) -> ProjectMemberRead:
        async def _get(session: AsyncSession) -> ProjectMemberRead:
            result = await session.execute(
                select(ProjectMembership, User)
                .join(User, User.id == ProjectMembership.user_id)
                .where(
                    ProjectMembership.project_id == project_id,
                    ProjectMembership.user_id == user_id,
                )
            )
            row = result.one_or_none()
            if not row:
                raise NotFoundError("Project membership", project_id=project_id, user_id=user_id)
            return _member_read(*row)

        return await self.db.transaction(_get)

    async def add_member(
        self,
        project_id: str,
        user_id: Optional[str],
        role: Union[str, ProjectRole] = ProjectRole.VIEWER,
    ) -> ProjectMemberRead:
        """Add a project member, joining them to the organization if needed."""
        if not user_id:
            raise ValidationError("A user id is required")
        parsed = coerce_role(ProjectRole, role)

        async def _add(session: AsyncSession) -> ProjectMemberRead:
            project = await get_active_project(session, project_id)
            user = await session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", id=user_id)

            org_membership = await get_org_membership(session, project.org_id, user_id)
            if org_membership is None:
                org_membership = OrganizationMembership(
                    org_id=project.org_id, user_id=user_id, role=IMPLICIT_ORG_ROLE.value
                )
                session.add(org_membership)
                await session.flush()
                log.info(
                    "org.member_auto_added",
                    org_id=project.org_id,
                    user_id=user_id,
                    via_project=project_id,
                )

            if await _get_membership(session, project_id, user_id):
                raise ConflictError(
                    "User is already a member of this project",
                    {"project_id": project_id, "user_id": user_id},
                )

            membership = ProjectMembership(
                project_id=project_id,
                user_id=user_id,
                org_membership_id=org_membership.id,
                role=parsed.value,
            )
            session.add(membership)
            await session.flush()

            log.info("project.member_added", project_id=project_id, user_id=user_id, role=parsed.value)
            return _member_read(membership, user)

        return await self.db.transaction(_add)

    async def update_member(
        self, project_id: str, user_id: str, role: Union[str, ProjectRole]
    ) -> ProjectMemberRead:
        parsed = coerce_role(ProjectRole, role)

        async def _update(session: AsyncSession) -> ProjectMemberRead:
            membership = await _get_membership(session, project_id, user_id)
            if not membership:
                raise NotFoundError("Project membership", project_id=project_id, user_id=user_id)

            if parsed is not ProjectRole.OWNER:
                await guard_last_owner(
                    session,
                    membership,
                    ProjectMembership,
                    ProjectMembership.project_id,
                    project_id,
                    scope="project",
                    action="demote",
                )

            membership.role = parsed.value
            membership.updated_at = utcnow()
            session.add(membership)
            await session.flush()

            user = await session.get(User, user_id)
            log.info("project.member_updated", project_id=project_id, user_id=user_id, role=parsed.value)
            return _member_read(membership, user)

        return await self.db.transaction(_update)

    async def remove_member(self, project_id: str, user_id: str) -> None:
        async def _remove(session: AsyncSession) -> None:
            membership = await _get_membership(session, project_id, user_id)
            if not membership:
                raise NotFoundError("Project membership", project_id=project_id, user_id=user_id)

            await guard_last_owner(
                session,
                membership,
                ProjectMembership,
                ProjectMembership.project_id,
                project_id,
                scope="project",
                action="remove",
                allow_sole_member=True,
            )

            await session.delete(membership)
            await session.flush()
            log.info("project.member_removed", project_id=project_id, user_id=user_id)

        await self.db.transaction(_remove)

    async def add_batch_members(
        self, project_id: str, members: Iterable[Mapping]
    ) -> BatchResult:
        """Add members one at a time, each in its own transaction.

        A failing entry is recorded in ``errors`` and does not undo or block
        the others.
        """
        members = list(members or [])
        if not members:
            raise ValidationError("A non-empty list of members is required")

        await self.db.transaction(lambda session: get_active_project(session, project_id))

        result = BatchResult()
        for member in members:
            user_id = member.get("user_id")
            role = member.get("role") or ProjectRole.VIEWER
            try:
                result.success.append(await self.add_member(project_id, user_id, role))
            except ServiceError as exc:
                log.warning(
                    "project.batch_member_failed",
                    project_id=project_id,
                    user_id=user_id,
                    error=exc.message,
                )
                result.errors.append(
                    BatchMemberError(user_id=user_id or "unknown", error=exc.message)
                )

        log.info(
            "project.batch_members_added",
            project_id=project_id,
            succeeded=len(result.success),
            failed=len(result.errors),
        )
        return result
