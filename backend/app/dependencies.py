from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_session
from .domain.ports.scheduler import JobSchedulerPort
from .models.user import User
from .security.token_inspection import (
    ExpiredTokenError,
    InvalidTokenError,
    subject_user_id,
    validate_access_token,
)
from .services.admin.permission_service import PermissionService
from .services.audit.recorder import AuditContext, AuditRecorder
from .services.jobs.job_service import JobService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    # Inactive users are still returned; every permission check denies them.
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )

    try:
        payload = validate_access_token(credentials.credentials)
        user_id = subject_user_id(payload)
    except ExpiredTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
        ) from None
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        ) from None

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )
    return user


def get_permission_service(db: AsyncSession = Depends(get_db)) -> PermissionService:
    return PermissionService(db)


async def require_admin(
    user: User = Depends(get_current_user),
    permission_service: PermissionService = Depends(get_permission_service),
) -> User:
    if not await permission_service.is_admin(user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return user


def get_scheduler(request: Request) -> JobSchedulerPort:
    return request.app.state.scheduler


def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder()


def get_audit_context(request: Request) -> AuditContext:
    return AuditContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_job_service(
    scheduler: JobSchedulerPort = Depends(get_scheduler),
    permission_service: PermissionService = Depends(get_permission_service),
    audit_recorder: AuditRecorder = Depends(get_audit_recorder),
) -> JobService:
    return JobService(
        scheduler,
        permission_service,
        audit_recorder,
        fetch_cap=settings.job_list_fetch_cap,
    )
