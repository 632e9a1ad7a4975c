from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class RoleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class RoleCreate(RoleBase):
    pass


class RoleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class RoleResponse(RoleBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class JobPermissionInput(BaseModel):
    job_id: int = Field(..., gt=0)
    app_name: str = Field(..., min_length=1, max_length=255)
    can_view: bool = False
    can_execute: bool = False
    can_edit: bool = False


class JobPermissionResponse(JobPermissionInput):
    id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    permissions: list[JobPermissionResponse] = Field(
        default_factory=list, validation_alias=AliasChoices("job_permissions", "permissions")
    )


class BatchSetPermissions(BaseModel):
    permissions: list[JobPermissionInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def reject_duplicate_jobs(self) -> "BatchSetPermissions":
        seen: set[int] = set()
        duplicates: set[int] = set()
        for permission in self.permissions:
            if permission.job_id in seen:
                duplicates.add(permission.job_id)
            seen.add(permission.job_id)
        if duplicates:
            raise ValueError(f"Duplicate job ids in batch: {sorted(duplicates)}")
        return self


class RoleUserResponse(BaseModel):
    user_id: int
    username: str
    email: str | None
    is_active: bool
    assigned_at: datetime
    assigned_by: int | None
