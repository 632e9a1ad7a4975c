from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    id: int
    user_id: int | None
    job_id: int | None
    action: str
    target: str | None
    result: str
    message: str | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogFilter(BaseModel):
    user_id: int | None = None
    job_id: int | None = None
    action: str | None = None
    result: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=500)


class AuditLogPage(BaseModel):
    total: int
    items: list[AuditLogResponse]


class CountEntry(BaseModel):
    key: str | int
    count: int


class TopUserEntry(BaseModel):
    user_id: int
    username: str
    count: int


class AuditStats(BaseModel):
    total_logs: int
    action_stats: list[CountEntry]
    result_stats: list[CountEntry]
    top_users: list[TopUserEntry]
    top_jobs: list[CountEntry]


class CleanupResult(BaseModel):
    deleted: int
