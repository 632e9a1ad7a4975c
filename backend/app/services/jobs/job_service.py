"""
Permission-gated access to the job scheduler.

Every state-changing operation runs in the same order: authorize, call the
scheduler, then record the audit entry. A denial raises before the
scheduler is contacted and is never audited; a scheduler failure
propagates unchanged and is never audited either.
"""
import json
import logging
from typing import Any

from ...domain.permissions import PermissionKind
from ...domain.ports.scheduler import JobSchedulerPort
from ...errors import NotFoundError
from ...schemas.scheduler import (
    LogDetail,
    PageResult,
    SchedulerGroup,
    SchedulerJob,
    SchedulerLog,
)
from ..admin.permission_service import PermissionService
from ..audit.recorder import AuditAction, AuditContext, AuditRecorder

logger = logging.getLogger(__name__)

ALL_GROUPS = -1


class JobService:
    def __init__(
        self,
        scheduler: JobSchedulerPort,
        permission_service: PermissionService,
        audit_recorder: AuditRecorder,
        fetch_cap: int = 10000,
    ):
        self.scheduler = scheduler
        self.permission_service = permission_service
        self.audit_recorder = audit_recorder
        self.fetch_cap = fetch_cap

    async def list_jobs_for_user(
        self,
        user_id: int,
        job_group: int = ALL_GROUPS,
        offset: int = 0,
        limit: int = 10,
    ) -> PageResult[SchedulerJob]:
        """One page of the jobs in ``job_group`` the user may view.

        Admin requests go straight to the scheduler. For everyone else the
        whole group is fetched (up to ``fetch_cap`` jobs), filtered, then
        paginated, so ``total`` is the number of viewable jobs. Jobs beyond
        the cap are not considered.
        """
        resolved = await self.permission_service.resolve_permissions(user_id)
        if resolved.is_admin:
            return await self.scheduler.list_jobs(job_group, offset, limit)

        viewable = resolved.viewable_job_ids()
        if not viewable:
            return PageResult[SchedulerJob](total=0, items=[])

        page = await self.scheduler.list_jobs(job_group, 0, self.fetch_cap)
        if page.total > len(page.items):
            logger.warning(
                "Job list truncated at %s of %s jobs for group %s",
                len(page.items),
                page.total,
                job_group,
            )

        visible = [job for job in page.items if job.id in viewable]
        return PageResult[SchedulerJob](
            total=len(visible),
            items=visible[offset:offset + limit],
        )

    async def accessible_groups_for_user(self, user_id: int) -> list[SchedulerGroup]:
        resolved = await self.permission_service.resolve_permissions(user_id)
        if resolved.is_admin:
            return await self.scheduler.list_groups()

        app_names = resolved.viewable_app_names()
        if not app_names:
            return []

        groups = await self.scheduler.list_groups()
        return [group for group in groups if group.appname in app_names]

    async def get_job_detail(
        self, user_id: int, job_id: int, job_group: int = ALL_GROUPS
    ) -> SchedulerJob:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.VIEW
        )
        return await self._get_job(job_id, job_group)

    async def trigger_job_as_user(
        self,
        user_id: int,
        job_id: int,
        executor_param: str | None = None,
        address_list: str | None = None,
        context: AuditContext | None = None,
    ) -> None:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.EXECUTE
        )
        await self.scheduler.trigger(job_id, executor_param, address_list)

        message = "Triggered job execution"
        if executor_param:
            message += f" with params: {executor_param}"
        await self.audit_recorder.record(
            user_id=user_id,
            job_id=job_id,
            action=AuditAction.EXECUTE_JOB,
            message=message,
            context=context,
        )

    async def start_job_as_user(
        self, user_id: int, job_id: int, context: AuditContext | None = None
    ) -> None:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.EDIT
        )
        await self.scheduler.start(job_id)
        await self.audit_recorder.record(
            user_id=user_id,
            job_id=job_id,
            action=AuditAction.START_JOB,
            message="Started job scheduling",
            context=context,
        )

    async def stop_job_as_user(
        self, user_id: int, job_id: int, context: AuditContext | None = None
    ) -> None:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.EDIT
        )
        await self.scheduler.stop(job_id)
        await self.audit_recorder.record(
            user_id=user_id,
            job_id=job_id,
            action=AuditAction.STOP_JOB,
            message="Stopped job scheduling",
            context=context,
        )

    async def update_job_as_user(
        self,
        user_id: int,
        job_id: int,
        changes: dict[str, Any],
        context: AuditContext | None = None,
    ) -> None:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.EDIT
        )
        job = await self._get_job(job_id, ALL_GROUPS)
        await self.scheduler.update(job, changes)
        await self.audit_recorder.record(
            user_id=user_id,
            job_id=job_id,
            action=AuditAction.EDIT_JOB,
            message=f"Updated job configuration: {json.dumps(changes, sort_keys=True, default=str)}",
            context=context,
        )

    async def get_job_logs(
        self, user_id: int, job_id: int, offset: int = 0, limit: int = 10
    ) -> PageResult[SchedulerLog]:
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.VIEW
        )
        return await self.scheduler.list_logs(job_id, offset, limit)

    async def get_log_detail(
        self, user_id: int, job_id: int, log_id: int, from_line: int = 0
    ) -> LogDetail:
        """Read a log of ``job_id``; a log of another job is NotFound."""
        await self.permission_service.require_job_permission(
            user_id, job_id, PermissionKind.VIEW
        )
        if not await self.scheduler.log_belongs_to_job(job_id, log_id):
            raise NotFoundError(
                f"Log {log_id} not found for job {job_id}",
                details={"job_id": job_id, "log_id": log_id},
            )
        return await self.scheduler.get_log_detail(log_id, from_line)

    async def _get_job(self, job_id: int, job_group: int) -> SchedulerJob:
        job = await self.scheduler.get_job(job_id, job_group)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found", details={"job_id": job_id})
        return job
