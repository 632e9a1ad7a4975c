"""
Job scheduler (xxl-job-admin) payloads.

Fields are read from the scheduler's camelCase keys and exposed in
snake_case. Unknown keys are kept so newer scheduler versions pass through.
"""
from typing import Generic, TypeVar

from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


_SCHEDULER_CONFIG = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
    extra="allow",
)

T = TypeVar("T")


class SchedulerJob(BaseModel):
    model_config = _SCHEDULER_CONFIG

    id: int
    job_group: int
    job_desc: str = ""
    author: str | None = None
    alarm_email: str | None = None
    schedule_type: str | None = None
    schedule_conf: str | None = None
    misfire_strategy: str | None = None
    executor_route_strategy: str | None = None
    executor_handler: str | None = None
    executor_param: str | None = None
    executor_block_strategy: str | None = None
    executor_timeout: int | None = None
    executor_fail_retry_count: int | None = None
    glue_type: str | None = None
    child_job_id: str | None = None
    trigger_status: int = 0
    trigger_last_time: int | None = None
    trigger_next_time: int | None = None


class SchedulerGroup(BaseModel):
    model_config = _SCHEDULER_CONFIG

    id: int
    appname: str
    title: str | None = None
    address_type: int | None = None
    address_list: str | None = None


class SchedulerLog(BaseModel):
    model_config = _SCHEDULER_CONFIG

    id: int
    job_group: int | None = None
    job_id: int
    executor_address: str | None = None
    executor_handler: str | None = None
    executor_param: str | None = None
    executor_fail_retry_count: int | None = None
    trigger_time: str | None = None
    trigger_code: int | None = None
    trigger_msg: str | None = None
    handle_time: str | None = None
    handle_code: int | None = None
    handle_msg: str | None = None
    alarm_status: int | None = None


class LogDetail(BaseModel):
    model_config = _SCHEDULER_CONFIG

    from_line_num: int = 0
    to_line_num: int = 0
    log_content: str | None = None
    is_end: bool = False


class PageResult(BaseModel, Generic[T]):
    total: int
    items: list[T]
