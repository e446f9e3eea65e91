from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from .common import ProjectRole
from .api_keys import ApiKeyPair


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    org_id: str = Field(..., min_length=1)


class ProjectUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)


class ProjectRead(BaseModel):
    id: str
    org_id: str
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectCreated(ProjectRead):
    """Returned once, on creation: carries the initial key pair in full."""
    api_keys: ApiKeyPair


class ProjectMemberAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: ProjectRole = ProjectRole.VIEWER


class ProjectMemberUpdate(BaseModel):
    role: ProjectRole


class ProjectMemberBatchAdd(BaseModel):
    members: List[ProjectMemberAdd] = Field(..., min_length=1)


class ProjectMemberRead(BaseModel):
    project_id: str
    user_id: str
    role: ProjectRole
    created_at: datetime
    updated_at: datetime
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None


class BatchMemberError(BaseModel):
    user_id: str
    error: str


class BatchResult(BaseModel):
    """Per-member outcome of a batch add; entries never affect each other."""
    success: List[ProjectMemberRead] = Field(default_factory=list)
    errors: List[BatchMemberError] = Field(default_factory=list)
