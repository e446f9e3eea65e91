"""
API key service: issuing, rotating, annotating, expiring and verifying
project credentials.

Key states are derived, never stored: a key is active while ``expires_at`` is
null or in the future, expired once it has passed, and purged when its row is
deleted. The plaintext secret leaves this module only in the return value of
``create`` and ``regenerate``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

import structlog
from sqlalchemy import and_, delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.credentials import (
    DEFAULT_SALT,
    KeyPair,
    display_fragment,
    hash_secret,
    new_key_pair,
    secrets_match,
)
from app.core.database import Database
from app.core.errors import BusinessRuleError, NotFoundError
from app.models.api_key import ApiKey
from app.models.base import as_utc, utcnow
from app.models.project import Project

from tenancy_shared.schemas.api_keys import (
    ApiKeyDetail,
    ApiKeyIssued,
    ApiKeyRead,
    VerifiedProject,
)

log = structlog.get_logger()


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an omitted argument, as opposed to an explicit None
UNSET: Any = _Unset()

ExpirationInput = Union[datetime, str, None]


def parse_expiration(value: ExpirationInput) -> Optional[datetime]:
    """Parse an expiration into an aware UTC datetime strictly in the future.

    ``None`` means "never expires". Naive values are read as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise BusinessRuleError("Invalid expiration date", {"expires_at": value})
    else:
        raise BusinessRuleError("Invalid expiration date", {"expires_at": str(value)})

    parsed = as_utc(parsed)
    if parsed <= utcnow():
        raise BusinessRuleError(
            "Expiration date must be in the future", {"expires_at": parsed.isoformat()}
        )
    return parsed


def is_expired(key: ApiKey, now: Optional[datetime] = None) -> bool:
    if key.expires_at is None:
        return False
    return as_utc(key.expires_at) <= (now or utcnow())


async def get_active_project(session: AsyncSession, project_id: str) -> Project:
    """Load a project that is not soft-deleted, or raise NotFound."""
    result = await session.execute(
        select(Project).where(Project.id == project_id, Project.deleted_at.is_(None))
    )
    project = result.scalar_one_or_none()
    if not project:
        raise NotFoundError("Project", id=project_id)
    return project


async def issue_api_key(
    session: AsyncSession,
    project_id: str,
    *,
    salt: str = DEFAULT_SALT,
    note: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> tuple[ApiKey, KeyPair]:
    """Insert a fresh key row for ``project_id``; returns the row and plaintext pair."""
    pair = new_key_pair()
    key = ApiKey(
        project_id=project_id,
        public_key=pair.public_key,
        hashed_secret_key=hash_secret(pair.secret_key, salt),
        display_secret_key=display_fragment(pair.secret_key),
        note=note,
        expires_at=expires_at,
    )
    session.add(key)
    await session.flush()
    return key, pair


def _issued(key: ApiKey, secret_key: str) -> ApiKeyIssued:
    return ApiKeyIssued(**ApiKeyRead.model_validate(key).model_dump(), secret_key=secret_key)


class ApiKeyService:
    def __init__(self, db: Database, *, salt: str = DEFAULT_SALT):
        self.db = db
        self.salt = salt

    async def _get_key(self, session: AsyncSession, key_id: str) -> ApiKey:
        result = await session.execute(
            select(ApiKey)
            .join(Project, Project.id == ApiKey.project_id)
            .where(ApiKey.id == key_id, Project.deleted_at.is_(None))
        )
        key = result.scalar_one_or_none()
        if not key:
            raise NotFoundError("API key", id=key_id)
        return key

    # -----------------------------------------------------------------------
    # Reads (never expose the hash or the secret)
    # -----------------------------------------------------------------------

    async def list_for_project(self, project_id: str) -> list[ApiKeyRead]:
        async def _list(session: AsyncSession) -> list[ApiKeyRead]:
            await get_active_project(session, project_id)
            result = await session.execute(
                select(ApiKey)
                .where(ApiKey.project_id == project_id)
                .order_by(ApiKey.created_at.desc())
            )
            return [ApiKeyRead.model_validate(k) for k in result.scalars().all()]

        return await self.db.transaction(_list)

    async def get(self, key_id: str) -> ApiKeyDetail:
        async def _get(session: AsyncSession) -> ApiKeyDetail:
            result = await session.execute(
                select(ApiKey, Project.name)
                .join(Project, Project.id == ApiKey.project_id)
                .where(ApiKey.id == key_id, Project.deleted_at.is_(None))
            )
            row = result.one_or_none()
            if not row:
                raise NotFoundError("API key", id=key_id)
            key, project_name = row
            return ApiKeyDetail(
                **ApiKeyRead.model_validate(key).model_dump(), project_name=project_name
            )

        return await self.db.transaction(_get)

    async def get_expired(self) -> list[ApiKeyRead]:
        now = utcnow()
        keys = await self.db.scalars(
            select(ApiKey)
            .where(and_(ApiKey.expires_at.is_not(None), ApiKey.expires_at < now))
            .order_by(ApiKey.expires_at)
        )
        return [ApiKeyRead.model_validate(k) for k in keys]

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def create(
        self,
        project_id: str,
        note: Optional[str] = None,
        expires_at: ExpirationInput = None,
    ) -> ApiKeyIssued:
        """Issue a new key pair. The returned secret is never retrievable again."""
        expiry = parse_expiration(expires_at)

        async def _create(session: AsyncSession) -> ApiKeyIssued:
            await get_active_project(session, project_id)
            key, pair = await issue_api_key(
                session, project_id, salt=self.salt, note=note, expires_at=expiry
            )
            log.info("api_key.created", api_key_id=key.id, project_id=project_id)
            return _issued(key, pair.secret_key)

        return await self.db.transaction(_create)

    async def regenerate(self, key_id: str, expires_at: Any = UNSET) -> ApiKeyIssued:
        """Replace the key material in place; id and note are preserved.

        Omitting ``expires_at`` keeps the current expiry; passing a value
        (including ``None``) validates and replaces it.
        """
        replace_expiry = expires_at is not UNSET
        expiry = parse_expiration(expires_at) if replace_expiry else None

        async def _regenerate(session: AsyncSession) -> ApiKeyIssued:
            key = await self._get_key(session, key_id)
            pair = new_key_pair()
            key.public_key = pair.public_key
            key.hashed_secret_key = hash_secret(pair.secret_key, self.salt)
            key.display_secret_key = display_fragment(pair.secret_key)
            if replace_expiry:
                key.expires_at = expiry
            key.updated_at = utcnow()
            session.add(key)
            await session.flush()

            log.info("api_key.regenerated", api_key_id=key_id, expiry_replaced=replace_expiry)
            return _issued(key, pair.secret_key)

        return await self.db.transaction(_regenerate)

    async def update_expiration(self, key_id: str, expires_at: ExpirationInput) -> ApiKeyRead:
        expiry = parse_expiration(expires_at)

        async def _update(session: AsyncSession) -> ApiKeyRead:
            key = await self._get_key(session, key_id)
            key.expires_at = expiry
            key.updated_at = utcnow()
            session.add(key)
            await session.flush()
            log.info("api_key.expiration_updated", api_key_id=key_id, expires_at=str(expiry))
            return ApiKeyRead.model_validate(key)

        return await self.db.transaction(_update)

    async def update_note(self, key_id: str, note: Optional[str]) -> ApiKeyRead:
        async def _update(session: AsyncSession) -> ApiKeyRead:
            key = await self._get_key(session, key_id)
            key.note = note
            key.updated_at = utcnow()
            session.add(key)
            await session.flush()
            log.info("api_key.note_updated", api_key_id=key_id)
            return ApiKeyRead.model_validate(key)

        return await self.db.transaction(_update)

    async def delete(self, key_id: str) -> None:
        async def _delete(session: AsyncSession) -> None:
            key = await self._get_key(session, key_id)
            await session.delete(key)
            await session.flush()
            log.info("api_key.deleted", api_key_id=key_id)

        await self.db.transaction(_delete)

    async def cleanup_expired(self) -> int:
        """Purge every expired key; returns how many rows were deleted."""
        now = utcnow()

        async def _cleanup(session: AsyncSession) -> int:
            result = await session.execute(
                delete(ApiKey)
                .where(and_(ApiKey.expires_at.is_not(None), ApiKey.expires_at < now))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

        deleted = await self.db.transaction(_cleanup)
        log.info("api_key.expired_purged", count=deleted)
        return deleted

    # -----------------------------------------------------------------------
    # Authentication
    # -----------------------------------------------------------------------

    async def verify(self, public_key: Optional[str], secret_key: Optional[str]) -> Optional[VerifiedProject]:
        """Resolve a key pair to its project, or ``None`` for no match.

        Unknown, expired and wrong-secret keys are indistinguishable to the
        caller. A match stamps ``last_used_at``.
        """
        if not public_key or not secret_key:
            return None

        async def _verify(session: AsyncSession) -> Optional[VerifiedProject]:
            result = await session.execute(select(ApiKey).where(ApiKey.public_key == public_key))
            key = result.scalar_one_or_none()
            if key is None:
                return None

            now = utcnow()
            if is_expired(key, now):
                log.warning("api_key.verify_expired", api_key_id=key.id, project_id=key.project_id)
                return None

            if not secrets_match(secret_key, key.hashed_secret_key, self.salt):
                return None

            project = await session.get(Project, key.project_id)
            if project is None or project.deleted_at is not None:
                return None

            await session.execute(
                update(ApiKey)
                .where(ApiKey.id == key.id)
                .values(last_used_at=now, updated_at=ApiKey.updated_at)
                .execution_options(synchronize_session=False)
            )
            return VerifiedProject(id=project.id, org_id=project.org_id, name=project.name)

        return await self.db.transaction(_verify)
