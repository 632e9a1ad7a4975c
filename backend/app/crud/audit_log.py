from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditLog


class AuditLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: int | None,
        action: str,
        result: str,
        job_id: int | None = None,
        target: str | None = None,
        message: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            user_id=user_id,
            job_id=job_id,
            action=action,
            target=target,
            result=result,
            message=message,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(audit_log)
        await self.session.flush()
        return audit_log

    @staticmethod
    def _conditions(
        user_id: int | None = None,
        job_id: int | None = None,
        action: str | None = None,
        result: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> list[Any]:
        conditions = []
        if user_id is not None:
            conditions.append(AuditLog.user_id == user_id)
        if job_id is not None:
            conditions.append(AuditLog.job_id == job_id)
        if action is not None:
            conditions.append(AuditLog.action == action)
        if result is not None:
            conditions.append(AuditLog.result == result)
        if from_date is not None:
            conditions.append(AuditLog.created_at >= from_date)
        if to_date is not None:
            conditions.append(AuditLog.created_at <= to_date)
        return conditions

    async def list_by_filters(
        self,
        user_id: int | None = None,
        job_id: int | None = None,
        action: str | None = None,
        result: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        conditions = self._conditions(user_id, job_id, action, result, from_date, to_date)

        query = select(AuditLog)
        count_query = select(func.count()).select_from(AuditLog)
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        query = query.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset)

        total = (await self.session.execute(count_query)).scalar_one()
        rows = await self.session.execute(query)
        return list(rows.scalars().all()), int(total)

    async def count_by(
        self,
        column: Any,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[tuple[Any, int]]:
        """Group entries by ``column`` and count them, largest groups first."""
        conditions = self._conditions(from_date=from_date, to_date=to_date)
        conditions.append(column.is_not(None))
        count = func.count().label("count")
        query = (
            select(column, count)
            .where(and_(*conditions))
            .group_by(column)
            .order_by(count.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [(row[0], int(row[1])) for row in result.all()]

    async def count(
        self,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> int:
        conditions = self._conditions(from_date=from_date, to_date=to_date)
        query = select(func.count()).select_from(AuditLog)
        if conditions:
            query = query.where(and_(*conditions))
        return int((await self.session.execute(query)).scalar_one())

    async def list_recent_by_user(self, user_id: int, limit: int = 20) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.user_id == user_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_recent_by_job(self, job_id: int, limit: int = 20) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.job_id == job_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(AuditLog).where(AuditLog.created_at < cutoff)
        )
        await self.session.flush()
        return result.rowcount or 0
