"""
Project service: project CRUD with soft delete.

Deleted projects keep their row (``deleted_at`` set) and are excluded from
every normal read and mutation.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.credentials import DEFAULT_SALT
from app.core.database import Database
from app.core.errors import BusinessRuleError, NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.organization import Organization
from app.models.project import Project
from app.services.api_keys import get_active_project, issue_api_key

from tenancy_shared.schemas.api_keys import ApiKeyPair
from tenancy_shared.schemas.projects import ProjectCreated, ProjectRead

log = structlog.get_logger()


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Project name is required")
    return cleaned


class ProjectService:
    def __init__(self, db: Database, *, salt: str = DEFAULT_SALT):
        self.db = db
        self.salt = salt

    async def list_projects(self, org_id: Optional[str] = None) -> list[Project]:
        stmt = select(Project).where(Project.deleted_at.is_(None))
        if org_id:
            stmt = stmt.where(Project.org_id == org_id)
        return await self.db.scalars(stmt.order_by(Project.created_at.desc()))

    async def get_project(self, project_id: str) -> Project:
        async def _get(session: AsyncSession) -> Project:
            return await get_active_project(session, project_id)

        return await self.db.transaction(_get)

    async def create_project(self, name: Optional[str], org_id: Optional[str]) -> ProjectCreated:
        """Create a project and its first API key; the secret is returned once."""
        cleaned = _clean_name(name)
        if not org_id:
            raise BusinessRuleError("An organization id is required to create a project")

        async def _create(session: AsyncSession) -> ProjectCreated:
            if await session.get(Organization, org_id) is None:
                raise NotFoundError("Organization", id=org_id)

            project = Project(name=cleaned, org_id=org_id)
            session.add(project)
            await session.flush()

            key, pair = await issue_api_key(session, project.id, salt=self.salt)

            log.info("project.created", project_id=project.id, org_id=org_id, api_key_id=key.id)
            return ProjectCreated(
                **ProjectRead.model_validate(project).model_dump(),
                api_keys=ApiKeyPair(public_key=pair.public_key, secret_key=pair.secret_key),
            )

        return await self.db.transaction(_create)

    async def update_project(self, project_id: str, name: Optional[str]) -> Project:
        cleaned = _clean_name(name)

        async def _update(session: AsyncSession) -> Project:
            project = await get_active_project(session, project_id)
            project.name = cleaned
            project.updated_at = utcnow()
            session.add(project)
            await session.flush()
            log.info("project.updated", project_id=project_id)
            return project

        return await self.db.transaction(_update)

    async def delete_project(self, project_id: str) -> None:
        """Soft delete: the row stays addressable for audit."""

        async def _delete(session: AsyncSession) -> None:
            project = await get_active_project(session, project_id)
            now = utcnow()
            project.deleted_at = now
            project.updated_at = now
            session.add(project)
            await session.flush()
            log.info("project.deleted", project_id=project_id)

        await self.db.transaction(_delete)
