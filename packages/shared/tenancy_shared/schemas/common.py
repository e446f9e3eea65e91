from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OrgRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    VIEWER = "VIEWER"
    NONE = "NONE"


class ProjectRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


# Role assigned to a user who joins an org implicitly through a project
IMPLICIT_ORG_ROLE = OrgRole.VIEWER


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int
    details: Optional[dict] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
