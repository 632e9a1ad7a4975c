"""
Job endpoints.

Handlers only translate HTTP into ``JobService`` calls; authorization,
filtering and auditing happen in the service.
"""
from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    get_audit_context,
    get_current_user,
    get_job_service,
    get_permission_service,
)
from ..errors import ValidationError
from ..models.user import User
from ..schemas.job import (
    ActionResponse,
    ExecuteJobRequest,
    JobPermissionFlags,
    UpdateJobRequest,
    UserPermissionsResponse,
)
from ..schemas.scheduler import LogDetail, PageResult, SchedulerGroup, SchedulerJob, SchedulerLog
from ..services.admin.permission_service import PermissionService
from ..services.audit.recorder import AuditContext
from ..services.jobs.job_service import ALL_GROUPS, JobService

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _parse_job_ids(raw: str | None) -> list[int] | None:
    if raw is None or not raw.strip():
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("job_ids must be a comma-separated list of integers") from None


@router.get("", response_model=PageResult[SchedulerJob])
async def list_jobs(
    job_group: int = Query(ALL_GROUPS),
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.list_jobs_for_user(current_user.id, job_group, offset, limit)


@router.get("/groups", response_model=list[SchedulerGroup])
async def list_groups(
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.accessible_groups_for_user(current_user.id)


@router.get("/permissions", response_model=UserPermissionsResponse)
async def my_permissions(
    job_ids: str | None = Query(None, description="Comma-separated job ids"),
    current_user: User = Depends(get_current_user),
    permission_service: PermissionService = Depends(get_permission_service),
):
    resolved = await permission_service.user_job_permissions(
        current_user.id, _parse_job_ids(job_ids)
    )
    return UserPermissionsResponse(
        is_admin=resolved.is_admin,
        permissions=[
            JobPermissionFlags(job_id=p.job_id, app_name=p.app_name or None, **p.to_flags())
            for p in resolved.permissions
        ],
    )


@router.get("/{job_id}", response_model=SchedulerJob)
async def get_job(
    job_id: int,
    job_group: int = Query(ALL_GROUPS),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.get_job_detail(current_user.id, job_id, job_group)


@router.post("/{job_id}/trigger", response_model=ActionResponse)
async def trigger_job(
    job_id: int,
    payload: ExecuteJobRequest | None = None,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
    context: AuditContext = Depends(get_audit_context),
):
    payload = payload or ExecuteJobRequest()
    await service.trigger_job_as_user(
        current_user.id,
        job_id,
        payload.executor_param,
        payload.address_list,
        context=context,
    )
    return ActionResponse(message=f"Job {job_id} triggered")


@router.post("/{job_id}/start", response_model=ActionResponse)
async def start_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
    context: AuditContext = Depends(get_audit_context),
):
    await service.start_job_as_user(current_user.id, job_id, context=context)
    return ActionResponse(message=f"Job {job_id} started")


@router.post("/{job_id}/stop", response_model=ActionResponse)
async def stop_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
    context: AuditContext = Depends(get_audit_context),
):
    await service.stop_job_as_user(current_user.id, job_id, context=context)
    return ActionResponse(message=f"Job {job_id} stopped")


@router.patch("/{job_id}", response_model=ActionResponse)
async def update_job(
    job_id: int,
    payload: UpdateJobRequest,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
    context: AuditContext = Depends(get_audit_context),
):
    changes = payload.changes()
    if not changes:
        raise ValidationError("No fields to update")
    await service.update_job_as_user(current_user.id, job_id, changes, context=context)
    return ActionResponse(message=f"Job {job_id} updated")


@router.get("/{job_id}/logs", response_model=PageResult[SchedulerLog])
async def list_job_logs(
    job_id: int,
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.get_job_logs(current_user.id, job_id, offset, limit)


@router.get("/{job_id}/logs/{log_id}", response_model=LogDetail)
async def get_log_detail(
    job_id: int,
    log_id: int,
    from_line: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.get_log_detail(current_user.id, job_id, log_id, from_line)
