from pydantic import BaseModel, Field


class ExecuteJobRequest(BaseModel):
    executor_param: str | None = None
    address_list: str | None = None


class UpdateJobRequest(BaseModel):
    job_desc: str | None = None
    author: str | None = None
    alarm_email: str | None = None
    schedule_type: str | None = None
    schedule_conf: str | None = None
    executor_handler: str | None = None
    executor_param: str | None = None
    executor_timeout: int | None = Field(None, ge=0)
    executor_fail_retry_count: int | None = Field(None, ge=0)

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class JobPermissionFlags(BaseModel):
    job_id: int
    app_name: str | None = None
    can_view: bool
    can_execute: bool
    can_edit: bool


class UserPermissionsResponse(BaseModel):
    is_admin: bool
    permissions: list[JobPermissionFlags]


class ActionResponse(BaseModel):
    message: str
