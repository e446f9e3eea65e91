# SQLModel definitions: imported here to ensure metadata is populated for Alembic.
from .base import TimestampMixin  # noqa: F401
from .organization import Organization, OrganizationMembership  # noqa: F401
from .user import Account, User, UserSession  # noqa: F401
from .project import Project, ProjectMembership  # noqa: F401
from .api_key import ApiKey  # noqa: F401
