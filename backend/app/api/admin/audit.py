from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...dependencies import get_db, require_admin
from ...schemas.audit_log import (
    AuditLogFilter,
    AuditLogPage,
    AuditLogResponse,
    AuditStats,
    CleanupResult,
)
from ...services.audit.audit_service import AuditService

router = APIRouter(
    prefix="/admin/audit",
    tags=["admin-audit"],
    dependencies=[Depends(require_admin)],
)


def get_audit_service(db: AsyncSession = Depends(get_db)) -> AuditService:
    return AuditService(db)


@router.get("", response_model=AuditLogPage)
async def query_audit_logs(
    user_id: int | None = Query(None),
    job_id: int | None = Query(None),
    action: str | None = Query(None),
    result: str | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    service: AuditService = Depends(get_audit_service),
):
    filters = AuditLogFilter(
        user_id=user_id,
        job_id=job_id,
        action=action,
        result=result,
        from_date=from_date,
        to_date=to_date,
        offset=offset,
        limit=limit,
    )
    return await service.query(filters)


@router.get("/stats", response_model=AuditStats)
async def audit_stats(
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    service: AuditService = Depends(get_audit_service),
):
    return await service.stats(from_date, to_date)


@router.get("/users/{user_id}", response_model=list[AuditLogResponse])
async def recent_for_user(
    user_id: int,
    limit: int = Query(20, ge=1, le=200),
    service: AuditService = Depends(get_audit_service),
):
    return await service.recent_for_user(user_id, limit)


@router.get("/jobs/{job_id}", response_model=list[AuditLogResponse])
async def recent_for_job(
    job_id: int,
    limit: int = Query(20, ge=1, le=200),
    service: AuditService = Depends(get_audit_service),
):
    return await service.recent_for_job(job_id, limit)


@router.post("/cleanup", response_model=CleanupResult)
async def clean_old_logs(
    days: int | None = Query(None, ge=1),
    service: AuditService = Depends(get_audit_service),
):
    deleted = await service.clean_old_logs(days or settings.audit_retention_days)
    return CleanupResult(deleted=deleted)
