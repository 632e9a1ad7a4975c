import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.audit_log import AuditLogRepository
from ...crud.user import UserRepository
from ...models.audit_log import AuditLog
from ...schemas.audit_log import (
    AuditLogFilter,
    AuditLogPage,
    AuditLogResponse,
    AuditStats,
    CountEntry,
    TopUserEntry,
)

logger = logging.getLogger(__name__)

TOP_ENTRIES = 10


class AuditService:
    """Read side of the audit log plus retention cleanup."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repo = AuditLogRepository(session)
        self.user_repo = UserRepository(session)

    async def query(self, filters: AuditLogFilter) -> AuditLogPage:
        items, total = await self.audit_repo.list_by_filters(
            user_id=filters.user_id,
            job_id=filters.job_id,
            action=filters.action,
            result=filters.result,
            from_date=filters.from_date,
            to_date=filters.to_date,
            limit=filters.limit,
            offset=filters.offset,
        )
        return AuditLogPage(
            total=total,
            items=[AuditLogResponse.model_validate(item) for item in items],
        )

    async def stats(
        self,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> AuditStats:
        total = await self.audit_repo.count(from_date, to_date)
        by_action = await self.audit_repo.count_by(AuditLog.action, from_date, to_date)
        by_result = await self.audit_repo.count_by(AuditLog.result, from_date, to_date)
        by_user = await self.audit_repo.count_by(
            AuditLog.user_id, from_date, to_date, limit=TOP_ENTRIES
        )
        by_job = await self.audit_repo.count_by(
            AuditLog.job_id, from_date, to_date, limit=TOP_ENTRIES
        )

        users = await self.user_repo.get_by_ids([user_id for user_id, _ in by_user])
        usernames = {user.id: user.username for user in users}

        return AuditStats(
            total_logs=total,
            action_stats=[CountEntry(key=key, count=count) for key, count in by_action],
            result_stats=[CountEntry(key=key, count=count) for key, count in by_result],
            top_users=[
                TopUserEntry(
                    user_id=user_id,
                    username=usernames.get(user_id, "Unknown"),
                    count=count,
                )
                for user_id, count in by_user
            ],
            top_jobs=[CountEntry(key=key, count=count) for key, count in by_job],
        )

    async def recent_for_user(self, user_id: int, limit: int = 20) -> list[AuditLogResponse]:
        rows = await self.audit_repo.list_recent_by_user(user_id, limit)
        return [AuditLogResponse.model_validate(row) for row in rows]

    async def recent_for_job(self, job_id: int, limit: int = 20) -> list[AuditLogResponse]:
        rows = await self.audit_repo.list_recent_by_job(job_id, limit)
        return [AuditLogResponse.model_validate(row) for row in rows]

    async def clean_old_logs(self, days: int) -> int:
        """Delete entries older than ``days`` days and return how many."""
        if days <= 0:
            raise ValueError("Retention days must be greater than 0")
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        try:
            deleted = await self.audit_repo.delete_older_than(cutoff)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Audit retention cleanup removed %s entries older than %s", deleted, cutoff)
        return deleted
