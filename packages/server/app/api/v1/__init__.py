"""
API v1 Router

Admin endpoints require the ``X-API-Key`` admin key. ``/auth`` is
tenant-facing and authenticates with a project key pair instead.
"""

from fastapi import APIRouter, Depends

from app.core.auth import require_admin_key
from . import api_keys, auth, organizations, project_memberships, projects, users

router = APIRouter()

admin = [Depends(require_admin_key)]

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"], dependencies=admin)
router.include_router(projects.router, prefix="/projects", tags=["Projects"], dependencies=admin)
router.include_router(
    project_memberships.router,
    prefix="/projects/{project_id}/members",
    tags=["Project Members"],
    dependencies=admin,
)
router.include_router(api_keys.router, prefix="/api-keys", tags=["API Keys"], dependencies=admin)
router.include_router(users.router, prefix="/users", tags=["Users"], dependencies=admin)
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/projects",
            "/projects/{project_id}/members",
            "/api-keys",
            "/users",
            "/auth/project",
        ],
    }
