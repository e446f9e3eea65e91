"""
Authentication for the admin API.

Supports:
- Operator auth: static admin key in the ``X-API-Key`` header
- Tenant auth: project key pair (``X-API-Key`` + ``X-API-Secret``)
- Password hashing for user accounts
"""

from __future__ import annotations

import hmac
from typing import Optional

import bcrypt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from app.core.config import Settings
from app.core.database import Database
from app.core.errors import AuthenticationError
from app.services.api_keys import ApiKeyService

from tenancy_shared.schemas.api_keys import VerifiedProject

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
api_secret_header = APIKeyHeader(name="X-API-Secret", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# Request-scoped resources
# ---------------------------------------------------------------------------

def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.db


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header),
    settings: Settings = Depends(get_settings_dep),
) -> None:
    """Gate every admin endpoint behind the configured static key."""
    if not settings.enable_admin_api_key_auth:
        return
    if not api_key or not hmac.compare_digest(api_key.encode(), settings.admin_api_key.encode()):
        log.warning("auth.admin_key_rejected", path=request.url.path)
        raise AuthenticationError("Invalid or missing admin API key")


async def get_verified_project(
    api_key: Optional[str] = Depends(api_key_header),
    api_secret: Optional[str] = Depends(api_secret_header),
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_settings_dep),
) -> VerifiedProject:
    """Resolve a tenant's key pair to its project or fail with 401."""
    if not api_key or not api_secret:
        raise AuthenticationError("API key and secret are required")
    project = await ApiKeyService(db, salt=settings.secret_key_salt).verify(api_key, api_secret)
    if project is None:
        raise AuthenticationError("Invalid API key")
    return project
