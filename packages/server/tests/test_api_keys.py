"""
Integration tests for the API key lifecycle.

Tests cover:
- One-time secret disclosure
- Verification (match, wrong secret, expired, deleted project)
- Regeneration and expiry semantics
- Expired key listing and purge
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from app.core.credentials import hash_secret
from app.core.errors import BusinessRuleError, NotFoundError
from app.models.api_key import ApiKey
from app.services.api_keys import ApiKeyService, parse_expiration
from app.services.organizations import OrganizationService
from app.services.projects import ProjectService

SALT = "unit-salt"


@pytest.fixture
def keys(db):
    return ApiKeyService(db, salt=SALT)


@pytest.fixture
async def project(db, make_user):
    owner = await make_user()
    org = await OrganizationService(db).create("Acme", owner.id)
    return await ProjectService(db, salt=SALT).create_project("Web", org.id)


async def _force_expiry(db, key_id: str, when: datetime) -> None:
    async def _set(session):
        key = await session.get(ApiKey, key_id)
        key.expires_at = when
        session.add(key)

    await db.transaction(_set)


def _future(days: int = 7) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def _past(days: int = 1) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


class TestParseExpiration:
    def test_none_means_never(self):
        assert parse_expiration(None) is None

    def test_iso_string(self):
        value = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        parsed = parse_expiration(value)
        assert parsed.tzinfo is not None

    def test_zulu_suffix(self):
        value = (datetime.now(timezone.utc) + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%SZ")
        assert parse_expiration(value) > datetime.now(timezone.utc)

    def test_naive_is_utc(self):
        naive = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        assert parse_expiration(naive).tzinfo == timezone.utc

    def test_garbage(self):
        with pytest.raises(BusinessRuleError, match="Invalid expiration date"):
            parse_expiration("next tuesday")

    def test_past(self):
        with pytest.raises(BusinessRuleError, match="must be in the future"):
            parse_expiration(_past())


class TestCreate:
    async def test_secret_is_returned_once(self, keys, project):
        issued = await keys.create(project.id, note="ci")

        assert issued.secret_key.startswith("sk_")
        assert issued.display_secret_key == issued.secret_key[:8] + "..."

        detail = await keys.get(issued.id)
        listed = await keys.list_for_project(project.id)
        for view in [detail, *listed]:
            dumped = view.model_dump()
            assert "secret_key" not in dumped
            assert "hashed_secret_key" not in dumped
            assert issued.secret_key not in dumped.values()

    async def test_only_hash_is_stored(self, db, keys, project):
        issued = await keys.create(project.id)
        row = await db.scalar(select(ApiKey).where(ApiKey.id == issued.id))
        assert row.hashed_secret_key == hash_secret(issued.secret_key, SALT)
        assert row.hashed_secret_key != issued.secret_key

    async def test_detail_includes_project_name(self, keys, project):
        issued = await keys.create(project.id)
        detail = await keys.get(issued.id)
        assert detail.project_name == "Web"
        assert detail.project_id == project.id

    async def test_list_includes_initial_key(self, keys, project):
        await keys.create(project.id)
        listed = await keys.list_for_project(project.id)
        public_keys = {k.public_key for k in listed}
        assert project.api_keys.public_key in public_keys
        assert len(listed) == 2

    async def test_missing_project(self, keys):
        with pytest.raises(NotFoundError):
            await keys.create("missing")

    async def test_past_expiry_rejected(self, keys, project):
        with pytest.raises(BusinessRuleError):
            await keys.create(project.id, expires_at=_past())

    async def test_get_missing(self, keys):
        with pytest.raises(NotFoundError):
            await keys.get("key_missing")


class TestVerify:
    async def test_round_trip(self, db, keys, project):
        issued = await keys.create(project.id)

        verified = await keys.verify(issued.public_key, issued.secret_key)

        assert verified.id == project.id
        assert verified.org_id == project.org_id
        assert verified.name == "Web"
        row = await db.scalar(select(ApiKey).where(ApiKey.id == issued.id))
        assert row.last_used_at is not None

    async def test_initial_project_key_verifies(self, keys, project):
        verified = await keys.verify(project.api_keys.public_key, project.api_keys.secret_key)
        assert verified.id == project.id

    async def test_wrong_secret(self, keys, project):
        issued = await keys.create(project.id)
        assert await keys.verify(issued.public_key, issued.secret_key + "0") is None

    async def test_unknown_key(self, keys):
        assert await keys.verify("pk_nope", "sk_nope") is None

    async def test_empty_input(self, keys):
        assert await keys.verify("", "") is None
        assert await keys.verify(None, "sk_x") is None

    async def test_expired_key_is_indistinguishable(self, db, keys, project):
        issued = await keys.create(project.id)
        await _force_expiry(db, issued.id, _past())

        expired = await keys.verify(issued.public_key, issued.secret_key)
        unknown = await keys.verify("pk_unknown", issued.secret_key)
        assert expired is None
        assert expired == unknown

    async def test_future_expiry_still_verifies(self, keys, project):
        issued = await keys.create(project.id, expires_at=_future())
        assert await keys.verify(issued.public_key, issued.secret_key) is not None

    async def test_deleted_project(self, db, keys, project):
        issued = await keys.create(project.id)
        await ProjectService(db).delete_project(project.id)
        assert await keys.verify(issued.public_key, issued.secret_key) is None

    async def test_salt_mismatch(self, db, project):
        issued = await ApiKeyService(db, salt=SALT).create(project.id)
        other = ApiKeyService(db, salt="different")
        assert await other.verify(issued.public_key, issued.secret_key) is None


class TestRegenerate:
    async def test_rotates_material_in_place(self, keys, project):
        issued = await keys.create(project.id, note="deploy bot")

        rotated = await keys.regenerate(issued.id)

        assert rotated.id == issued.id
        assert rotated.note == "deploy bot"
        assert rotated.public_key != issued.public_key
        assert rotated.secret_key != issued.secret_key
        assert await keys.verify(issued.public_key, issued.secret_key) is None
        assert (await keys.verify(rotated.public_key, rotated.secret_key)).id == project.id

    async def test_omitted_expiry_is_kept(self, keys, project):
        expiry = _future(30)
        issued = await keys.create(project.id, expires_at=expiry)
        rotated = await keys.regenerate(issued.id)
        assert rotated.expires_at is not None
        assert abs(rotated.expires_at.replace(tzinfo=timezone.utc) - expiry) < timedelta(seconds=1)

    async def test_explicit_none_clears_expiry(self, keys, project):
        issued = await keys.create(project.id, expires_at=_future())
        rotated = await keys.regenerate(issued.id, expires_at=None)
        assert rotated.expires_at is None

    async def test_explicit_value_replaces_expiry(self, keys, project):
        issued = await keys.create(project.id)
        rotated = await keys.regenerate(issued.id, expires_at=_future(2))
        assert rotated.expires_at is not None

    async def test_past_expiry_rejected(self, keys, project):
        issued = await keys.create(project.id)
        with pytest.raises(BusinessRuleError):
            await keys.regenerate(issued.id, expires_at=_past())

    async def test_missing(self, keys):
        with pytest.raises(NotFoundError):
            await keys.regenerate("key_missing")


class TestUpdates:
    async def test_update_expiration(self, keys, project):
        issued = await keys.create(project.id)
        updated = await keys.update_expiration(issued.id, _future())
        assert updated.expires_at is not None
        cleared = await keys.update_expiration(issued.id, None)
        assert cleared.expires_at is None

    async def test_update_expiration_rejects_past(self, keys, project):
        issued = await keys.create(project.id)
        with pytest.raises(BusinessRuleError):
            await keys.update_expiration(issued.id, _past())

    async def test_update_note(self, keys, project):
        issued = await keys.create(project.id)
        updated = await keys.update_note(issued.id, "rotated quarterly")
        assert updated.note == "rotated quarterly"

    async def test_delete(self, keys, project):
        issued = await keys.create(project.id)
        await keys.delete(issued.id)
        with pytest.raises(NotFoundError):
            await keys.get(issued.id)
        with pytest.raises(NotFoundError):
            await keys.delete(issued.id)

    async def test_keys_of_deleted_project_are_not_writable(self, db, keys, project):
        issued = await keys.create(project.id, note="ci")
        await ProjectService(db).delete_project(project.id)

        with pytest.raises(NotFoundError):
            await keys.update_note(issued.id, "changed")
        with pytest.raises(NotFoundError):
            await keys.update_expiration(issued.id, _future())
        with pytest.raises(NotFoundError):
            await keys.regenerate(issued.id)
        with pytest.raises(NotFoundError):
            await keys.delete(issued.id)

        row = await db.scalar(select(ApiKey).where(ApiKey.id == issued.id))
        assert row.note == "ci"
        assert row.public_key == issued.public_key


class TestExpiredCleanup:
    async def test_lists_and_purges_only_expired(self, db, keys, project):
        stale = await keys.create(project.id)
        fresh = await keys.create(project.id, expires_at=_future())
        await _force_expiry(db, stale.id, _past())

        expired = await keys.get_expired()
        assert [k.id for k in expired] == [stale.id]

        assert await keys.cleanup_expired() == 1
        assert await keys.get_expired() == []
        assert (await keys.get(fresh.id)).id == fresh.id
        with pytest.raises(NotFoundError):
            await keys.get(stale.id)

    async def test_nothing_to_purge(self, keys, project):
        assert await keys.cleanup_expired() == 0
