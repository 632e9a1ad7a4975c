"""
Audit recorder for gated job operations.

Entries are written after the scheduler accepted the operation, in a
session of their own so a failed write never touches the caller's
transaction. Write failures are logged and swallowed.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.audit_log import AuditLogRepository
from ...database import AsyncSessionLocal

logger = logging.getLogger(__name__)


class AuditAction:
    EXECUTE_JOB = "EXECUTE_JOB"
    START_JOB = "START_JOB"
    STOP_JOB = "STOP_JOB"
    EDIT_JOB = "EDIT_JOB"


class AuditResult:
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class AuditContext:
    ip_address: str | None = None
    user_agent: str | None = None


class AuditRecorder:
    def __init__(self, session_factory: Callable[[], Any] | None = None) -> None:
        self._session_factory = session_factory or AsyncSessionLocal

    async def record(
        self,
        *,
        user_id: int,
        action: str,
        result: str = AuditResult.SUCCESS,
        job_id: int | None = None,
        message: str | None = None,
        context: AuditContext | None = None,
    ) -> None:
        context = context or AuditContext()
        try:
            async with self._session_factory() as session:
                await self._write(
                    session,
                    user_id=user_id,
                    job_id=job_id,
                    action=action,
                    result=result,
                    message=message,
                    context=context,
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Audit write failed action=%s user_id=%s job_id=%s",
                action,
                user_id,
                job_id,
            )

    @staticmethod
    async def _write(
        session: AsyncSession,
        *,
        user_id: int,
        job_id: int | None,
        action: str,
        result: str,
        message: str | None,
        context: AuditContext,
    ) -> None:
        await AuditLogRepository(session).create(
            user_id=user_id,
            job_id=job_id,
            action=action,
            target=f"Job {job_id}" if job_id is not None else None,
            result=result,
            message=message,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
