from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    id: int
    username: str
    email: str | None
    is_admin: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignRoles(BaseModel):
    role_ids: list[int] = Field(default_factory=list)


class SetActive(BaseModel):
    is_active: bool


class UserRoleResponse(BaseModel):
    role_id: int
    name: str
    description: str | None
    assigned_at: datetime
    assigned_by: int | None
