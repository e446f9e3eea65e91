"""
Service providers for route handlers.

Each provider builds a manager around the application's ``Database``.
"""

from fastapi import Depends

from app.core.auth import get_database, get_settings_dep
from app.core.config import Settings
from app.core.database import Database
from app.services.api_keys import ApiKeyService
from app.services.organizations import OrganizationService
from app.services.project_memberships import ProjectMembershipService
from app.services.projects import ProjectService
from app.services.users import UserService


def get_organization_service(db: Database = Depends(get_database)) -> OrganizationService:
    return OrganizationService(db)


def get_project_service(
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_settings_dep),
) -> ProjectService:
    return ProjectService(db, salt=settings.secret_key_salt)


def get_project_membership_service(
    db: Database = Depends(get_database),
) -> ProjectMembershipService:
    return ProjectMembershipService(db)


def get_api_key_service(
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_settings_dep),
) -> ApiKeyService:
    return ApiKeyService(db, salt=settings.secret_key_salt)


def get_user_service(db: Database = Depends(get_database)) -> UserService:
    return UserService(db)
