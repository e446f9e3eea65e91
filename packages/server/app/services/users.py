"""
User management service: user CRUD and the deletion guard.

A user cannot be deleted while any organization membership references them;
the caller has to remove those memberships first. Identity records (linked
accounts and login sessions) go with the user.
"""

from __future__ import annotations

import math
from typing import Optional

import structlog
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import Database
from app.core.errors import BusinessRuleError, ConflictError, NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.organization import OrganizationMembership
from app.models.user import Account, User, UserSession

from tenancy_shared.schemas.common import Pagination
from tenancy_shared.schemas.users import USER_UPDATE_FIELDS, UserListResponse, UserResponse, UserUpdate

log = structlog.get_logger()

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


async def _email_taken(session: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id:
        stmt = stmt.where(User.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


class UserService:
    def __init__(self, db: Database):
        self.db = db

    async def list_users(
        self,
        search: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        page: int = 1,
    ) -> UserListResponse:
        """Page through users, optionally filtered by name or email."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(1, page)

        async def _list(session: AsyncSession) -> UserListResponse:
            stmt = select(User)
            count_stmt = select(func.count()).select_from(User)
            if search:
                pattern = f"%{search.strip()}%"
                condition = or_(User.name.ilike(pattern), User.email.ilike(pattern))
                stmt = stmt.where(condition)
                count_stmt = count_stmt.where(condition)

            total = (await session.execute(count_stmt)).scalar_one()
            result = await session.execute(
                stmt.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
            )
            users = [UserResponse.model_validate(u) for u in result.scalars().all()]
            return UserListResponse(
                users=users,
                pagination=Pagination(
                    total=total,
                    page=page,
                    limit=limit,
                    pages=math.ceil(total / limit) if total else 0,
                ),
            )

        return await self.db.transaction(_list)

    async def get_user(self, user_id: str) -> User:
        user = await self.db.scalar(select(User).where(User.id == user_id))
        if not user:
            raise NotFoundError("User", id=user_id)
        return user

    async def create_user(
        self, name: Optional[str], email: Optional[str], password: Optional[str] = None
    ) -> User:
        if not email:
            raise ValidationError("Email is required")

        async def _create(session: AsyncSession) -> User:
            if await _email_taken(session, email):
                raise ConflictError("A user with this email already exists", {"email": email})
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(password) if password else None,
            )
            session.add(user)
            await session.flush()
            log.info("user.created", user_id=user.id)
            return user

        return await self.db.transaction(_create)

    async def update_user(self, user_id: str, changes: UserUpdate) -> User:
        """Write only the fields explicitly set on ``changes``."""
        fields = [f for f in USER_UPDATE_FIELDS if f in changes.model_fields_set]
        if not fields:
            raise ValidationError("No fields to update")

        async def _update(session: AsyncSession) -> User:
            user = await session.get(User, user_id)
            if not user:
                raise NotFoundError("User", id=user_id)
            if "email" in fields:
                if not changes.email:
                    raise ValidationError("Email cannot be empty")
                if await _email_taken(session, changes.email, exclude_id=user_id):
                    raise ConflictError(
                        "A user with this email already exists", {"email": changes.email}
                    )

            for field in fields:
                value = getattr(changes, field)
                if field == "feature_flags" and value is None:
                    value = []
                if field == "admin" and value is None:
                    value = False
                setattr(user, field, value)
            user.updated_at = utcnow()
            session.add(user)
            await session.flush()

            log.info("user.updated", user_id=user_id, fields=fields)
            return user

        return await self.db.transaction(_update)

    async def delete_user(self, user_id: str) -> None:
        """Delete a user with no organization memberships left."""

        async def _delete(session: AsyncSession) -> None:
            result = await session.execute(
                select(func.count())
                .select_from(OrganizationMembership)
                .where(OrganizationMembership.user_id == user_id)
            )
            memberships = result.scalar_one()
            if memberships:
                raise BusinessRuleError(
                    f"Cannot delete user: still a member of {memberships} organization(s). "
                    "Remove the user from all organizations first.",
                    {"user_id": user_id, "organization_count": memberships},
                )

            await session.execute(delete(Account).where(Account.user_id == user_id))
            await session.execute(delete(UserSession).where(UserSession.user_id == user_id))
            removed = await session.execute(delete(User).where(User.id == user_id))
            if not removed.rowcount:
                raise NotFoundError("User", id=user_id)

            log.info("user.deleted", user_id=user_id)

        await self.db.transaction(_delete)
