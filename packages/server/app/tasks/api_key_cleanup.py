"""
ARQ background task: purge API keys whose expiry has passed.

Scheduled to run periodically (every hour).
"""

from __future__ import annotations

import structlog

from app.core.config import get_settings
from app.core.database import Database
from app.services.api_keys import ApiKeyService

log = structlog.get_logger()


async def purge_expired_api_keys(ctx: dict) -> int:
    """Delete every expired key. Returns the number of keys purged."""
    db = ctx.get("db")
    owns_db = db is None
    settings = get_settings()
    if owns_db:
        db = Database.from_settings(settings)

    try:
        count = await ApiKeyService(db, salt=settings.secret_key_salt).cleanup_expired()
    finally:
        if owns_db:
            await db.dispose()

    if count:
        log.info("api_key_cleanup.batch_purged", count=count)
    return count


# ARQ worker settings
class WorkerSettings:
    """ARQ worker configuration."""

    functions = [purge_expired_api_keys]
    cron_jobs = [
        # Run every hour
        {
            "coroutine": purge_expired_api_keys,
            "hour": None,  # every hour
            "minute": 0,
        },
    ]
