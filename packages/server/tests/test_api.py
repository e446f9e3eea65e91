"""
HTTP tests for the REST API: auth, error envelope and route wiring.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.main import create_app


@pytest.fixture
async def seeded(client: AsyncClient, admin_headers):
    """An owner, an org and a project created through the API."""
    owner = (
        await client.post(
            "/api/v1/users",
            json={"name": "Owner", "email": "owner@example.com", "password": "owner-pass"},
            headers=admin_headers,
        )
    ).json()
    org = (
        await client.post(
            "/api/v1/organizations",
            json={"name": "Acme", "user_id": owner["id"]},
            headers=admin_headers,
        )
    ).json()
    project = (
        await client.post(
            "/api/v1/projects",
            json={"name": "Web", "org_id": org["id"]},
            headers=admin_headers,
        )
    ).json()
    return {"owner": owner, "org": org, "project": project}


class TestSystem:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"]["status"] == "connected"

    async def test_health_db(self, client: AsyncClient):
        response = await client.get("/health/db")
        assert response.status_code == 200
        assert response.json()["status"] == "connected"

    async def test_health_reports_database_down(self, tmp_path):
        missing = tmp_path / "nope" / "db.sqlite"
        settings = Settings(database_url=f"sqlite+aiosqlite:///{missing}", log_json=False)
        app = create_app(settings=settings)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health")
        await app.state.db.dispose()
        assert response.status_code == 503
        assert response.json()["database"]["status"] == "error"

    async def test_api_root(self, client: AsyncClient):
        response = await client.get("/api/v1/")
        assert response.status_code == 200
        assert response.json()["api"] == "v1"

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestAdminAuth:
    async def test_missing_key(self, client: AsyncClient):
        response = await client.get("/api/v1/organizations")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    async def test_wrong_key(self, client: AsyncClient):
        response = await client.get("/api/v1/users", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    async def test_auth_can_be_disabled(self, db):
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            enable_admin_api_key_auth=False,
            log_json=False,
        )
        app = create_app(settings=settings, database=db)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/api/v1/organizations")
        assert response.status_code == 200
        assert response.json() == []


class TestErrorEnvelope:
    async def test_not_found(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/organizations/missing", headers=admin_headers)
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["status"] == 404
        assert error["message"] == "Organization not found"

    async def test_conflict(self, client: AsyncClient, admin_headers, seeded):
        response = await client.post(
            f"/api/v1/organizations/{seeded['org']['id']}/members",
            json={"user_id": seeded["owner"]["id"], "role": "ADMIN"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    async def test_business_rule(self, client: AsyncClient, admin_headers, seeded):
        other = (
            await client.post(
                "/api/v1/users", json={"email": "other@example.com"}, headers=admin_headers
            )
        ).json()
        await client.post(
            f"/api/v1/organizations/{seeded['org']['id']}/members",
            json={"user_id": other["id"]},
            headers=admin_headers,
        )
        response = await client.put(
            f"/api/v1/organizations/{seeded['org']['id']}/members/{seeded['owner']['id']}",
            json={"role": "VIEWER"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BUSINESS_RULE_VIOLATION"
        assert error["details"]["owner_count"] == 1

    async def test_request_shape_is_422(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/organizations", json={}, headers=admin_headers)
        assert response.status_code == 422


class TestOrganizationRoutes:
    async def test_lifecycle(self, client: AsyncClient, admin_headers, seeded):
        org_id = seeded["org"]["id"]

        response = await client.put(
            f"/api/v1/organizations/{org_id}", json={"name": "Acme Corp"}, headers=admin_headers
        )
        assert response.json()["name"] == "Acme Corp"

        members = (
            await client.get(f"/api/v1/organizations/{org_id}/members", headers=admin_headers)
        ).json()
        assert len(members) == 1
        assert members[0]["role"] == "OWNER"
        assert members[0]["email"] == "owner@example.com"

        listed = (await client.get("/api/v1/organizations", headers=admin_headers)).json()
        assert [o["id"] for o in listed] == [org_id]


class TestProjectRoutes:
    async def test_create_returns_key_pair_once(self, client: AsyncClient, admin_headers, seeded):
        project = seeded["project"]
        assert project["api_keys"]["secret_key"].startswith("sk_")

        fetched = (
            await client.get(f"/api/v1/projects/{project['id']}", headers=admin_headers)
        ).json()
        assert "api_keys" not in fetched

        keys = (
            await client.get(f"/api/v1/projects/{project['id']}/api-keys", headers=admin_headers)
        ).json()
        assert len(keys) == 1
        assert "secret_key" not in keys[0]
        assert keys[0]["public_key"] == project["api_keys"]["public_key"]

    async def test_list_by_org_and_soft_delete(self, client: AsyncClient, admin_headers, seeded):
        org_id = seeded["org"]["id"]
        project_id = seeded["project"]["id"]

        listed = (
            await client.get("/api/v1/projects", params={"org_id": org_id}, headers=admin_headers)
        ).json()
        assert [p["id"] for p in listed] == [project_id]

        response = await client.delete(f"/api/v1/projects/{project_id}", headers=admin_headers)
        assert response.status_code == 204
        response = await client.get(f"/api/v1/projects/{project_id}", headers=admin_headers)
        assert response.status_code == 404


class TestProjectMemberRoutes:
    async def test_add_update_remove(self, client: AsyncClient, admin_headers, seeded):
        project_id = seeded["project"]["id"]
        user = (
            await client.post(
                "/api/v1/users", json={"name": "Dev", "email": "dev@example.com"}, headers=admin_headers
            )
        ).json()

        response = await client.post(
            f"/api/v1/projects/{project_id}/members",
            json={"user_id": user["id"], "role": "MEMBER"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Dev"

        org_members = (
            await client.get(
                f"/api/v1/organizations/{seeded['org']['id']}/members", headers=admin_headers
            )
        ).json()
        assert {m["user_id"]: m["role"] for m in org_members}[user["id"]] == "VIEWER"

        response = await client.put(
            f"/api/v1/projects/{project_id}/members/{user['id']}",
            json={"role": "ADMIN"},
            headers=admin_headers,
        )
        assert response.json()["role"] == "ADMIN"

        response = await client.delete(
            f"/api/v1/projects/{project_id}/members/{user['id']}", headers=admin_headers
        )
        assert response.status_code == 204
        response = await client.get(
            f"/api/v1/projects/{project_id}/members/{user['id']}", headers=admin_headers
        )
        assert response.status_code == 404

    async def test_batch(self, client: AsyncClient, admin_headers, seeded):
        project_id = seeded["project"]["id"]
        response = await client.post(
            f"/api/v1/projects/{project_id}/members/batch",
            json={
                "members": [
                    {"user_id": seeded["owner"]["id"], "role": "OWNER"},
                    {"user_id": "usr_missing", "role": "VIEWER"},
                ]
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert len(body["success"]) == 1
        assert body["errors"] == [{"user_id": "usr_missing", "error": "User not found"}]

        members = (
            await client.get(f"/api/v1/projects/{project_id}/members", headers=admin_headers)
        ).json()
        assert [m["user_id"] for m in members] == [seeded["owner"]["id"]]


class TestApiKeyRoutes:
    async def test_regenerate_and_verify(self, client: AsyncClient, admin_headers, seeded):
        project = seeded["project"]
        issued = (
            await client.post(
                f"/api/v1/projects/{project['id']}/api-keys",
                json={"note": "ci"},
                headers=admin_headers,
            )
        ).json()
        assert issued["secret_key"].startswith("sk_")

        tenant_headers = {"X-API-Key": issued["public_key"], "X-API-Secret": issued["secret_key"]}
        response = await client.get("/api/v1/auth/project", headers=tenant_headers)
        assert response.status_code == 200
        assert response.json() == {
            "id": project["id"],
            "org_id": project["org_id"],
            "name": "Web",
        }

        rotated = (
            await client.post(f"/api/v1/api-keys/{issued['id']}/regenerate", headers=admin_headers)
        ).json()
        assert rotated["id"] == issued["id"]
        assert rotated["note"] == "ci"

        response = await client.get("/api/v1/auth/project", headers=tenant_headers)
        assert response.status_code == 401

    async def test_wrong_secret_is_401(self, client: AsyncClient, seeded):
        keys = seeded["project"]["api_keys"]
        response = await client.get(
            "/api/v1/auth/project",
            headers={"X-API-Key": keys["public_key"], "X-API-Secret": "sk_wrong"},
        )
        assert response.status_code == 401

    async def test_missing_secret_header_is_401(self, client: AsyncClient, seeded):
        response = await client.get(
            "/api/v1/auth/project", headers={"X-API-Key": seeded["project"]["api_keys"]["public_key"]}
        )
        assert response.status_code == 401

    async def test_note_expiration_and_delete(self, client: AsyncClient, admin_headers, seeded):
        project_id = seeded["project"]["id"]
        key = (
            await client.get(f"/api/v1/projects/{project_id}/api-keys", headers=admin_headers)
        ).json()[0]

        response = await client.put(
            f"/api/v1/api-keys/{key['id']}/note", json={"note": "prod"}, headers=admin_headers
        )
        assert response.json()["note"] == "prod"

        future = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
        response = await client.put(
            f"/api/v1/api-keys/{key['id']}/expiration",
            json={"expires_at": future},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["expires_at"] is not None

        past = (datetime.now(timezone.utc) - timedelta(days=3)).isoformat()
        response = await client.put(
            f"/api/v1/api-keys/{key['id']}/expiration",
            json={"expires_at": past},
            headers=admin_headers,
        )
        assert response.status_code == 400

        detail = (await client.get(f"/api/v1/api-keys/{key['id']}", headers=admin_headers)).json()
        assert detail["project_name"] == "Web"
        assert "secret_key" not in detail

        response = await client.delete(f"/api/v1/api-keys/{key['id']}", headers=admin_headers)
        assert response.status_code == 204

    async def test_expired_endpoints(self, client: AsyncClient, admin_headers, seeded):
        response = await client.get("/api/v1/api-keys/expired", headers=admin_headers)
        assert response.json() == []
        response = await client.delete("/api/v1/api-keys/expired", headers=admin_headers)
        assert response.json() == {"deleted": 0}


class TestUserRoutes:
    async def test_crud_and_delete_guard(self, client: AsyncClient, admin_headers, seeded):
        owner_id = seeded["owner"]["id"]

        listed = (
            await client.get("/api/v1/users", params={"search": "owner"}, headers=admin_headers)
        ).json()
        assert listed["pagination"]["total"] == 1
        assert "password_hash" not in listed["users"][0]

        response = await client.put(
            f"/api/v1/users/{owner_id}", json={"feature_flags": ["beta"]}, headers=admin_headers
        )
        assert response.json()["feature_flags"] == ["beta"]
        assert response.json()["name"] == "Owner"

        response = await client.delete(f"/api/v1/users/{owner_id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"]["details"]["organization_count"] == 1

        response = await client.get(f"/api/v1/users/{owner_id}", headers=admin_headers)
        assert response.status_code == 200

    async def test_duplicate_email(self, client: AsyncClient, admin_headers, seeded):
        response = await client.post(
            "/api/v1/users", json={"email": "owner@example.com"}, headers=admin_headers
        )
        assert response.status_code == 409
