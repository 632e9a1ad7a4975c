from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ...schemas.scheduler import (
    LogDetail,
    PageResult,
    SchedulerGroup,
    SchedulerJob,
    SchedulerLog,
)


class JobSchedulerPort(Protocol):
    """Operations the gateway delegates to the external job scheduler.

    Implementations raise ``ExternalUnavailableError`` for transport and
    authentication failures and ``SchedulerOperationError`` when the
    scheduler answers but refuses the operation.
    """

    async def list_jobs(
        self, job_group: int, offset: int, limit: int
    ) -> PageResult[SchedulerJob]:
        ...

    async def get_job(self, job_id: int, job_group: int = -1) -> SchedulerJob | None:
        ...

    async def list_groups(self) -> list[SchedulerGroup]:
        ...

    async def trigger(
        self,
        job_id: int,
        executor_param: str | None = None,
        address_list: str | None = None,
    ) -> None:
        ...

    async def start(self, job_id: int) -> None:
        ...

    async def stop(self, job_id: int) -> None:
        ...

    async def update(self, job: SchedulerJob, changes: Mapping[str, Any]) -> None:
        ...

    async def list_logs(
        self, job_id: int, offset: int, limit: int
    ) -> PageResult[SchedulerLog]:
        ...

    async def log_belongs_to_job(self, job_id: int, log_id: int) -> bool:
        ...

    async def get_log_detail(self, log_id: int, from_line: int = 0) -> LogDetail:
        ...
