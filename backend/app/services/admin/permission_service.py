import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.role_job_permission import RoleJobPermissionRepository
from ...crud.user import UserRepository
from ...domain.permissions import (
    FULL_ACCESS,
    NO_ACCESS,
    JobPermission,
    PermissionKind,
    UserPermissions,
    merge_job_permissions,
)
from ...errors import AuthorizationDeniedError

logger = logging.getLogger(__name__)


class PermissionService:
    """Resolves and checks per-job permissions for users.

    Nothing is cached: every call reads the current user, role membership
    and grant rows, so role changes and deactivation apply to the next
    request. Unknown and inactive users resolve to no permissions rather
    than raising. Admin bypass applies only to active admins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.grant_repo = RoleJobPermissionRepository(session)

    async def resolve_permissions(self, user_id: int) -> UserPermissions:
        """Merge the grants of every role the user holds.

        Admins return immediately with an empty list; no grant query runs.
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.is_active:
            return UserPermissions.denied()

        if user.is_admin:
            return UserPermissions.admin()

        grants = await self.grant_repo.list_for_user(user_id)
        return UserPermissions(is_admin=False, permissions=merge_job_permissions(grants))

    async def authorize(
        self,
        user_id: int,
        job_id: int,
        kind: PermissionKind | str,
    ) -> bool:
        """Check one permission on one job.

        Uses a counting query instead of a full resolve; the result matches
        the OR-merged flag of ``resolve_permissions`` for the job.
        """
        kind = PermissionKind(kind)

        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.is_active:
            return False

        if user.is_admin:
            return True

        granting = await self.grant_repo.count_granting(user_id, job_id, kind)
        return granting > 0

    async def require_job_permission(
        self,
        user_id: int,
        job_id: int,
        kind: PermissionKind | str,
    ) -> None:
        """Raise ``AuthorizationDeniedError`` unless ``authorize`` passes.

        Denials are logged but never written to the audit log.
        """
        kind = PermissionKind(kind)
        if await self.authorize(user_id, job_id, kind):
            return

        logger.info(
            "job_permission_denied user_id=%s job_id=%s permission=%s",
            user_id,
            job_id,
            kind.value,
        )
        raise AuthorizationDeniedError(
            f"You do not have '{kind.value}' permission for job {job_id}",
            details={"job_id": job_id, "permission": kind.value},
        )

    async def is_admin(self, user_id: int) -> bool:
        user = await self.user_repo.get_by_id(user_id)
        return bool(user is not None and user.is_active and user.is_admin)

    async def accessible_job_ids(self, user_id: int) -> set[int] | None:
        """Job ids the user may view; ``None`` means every job."""
        resolved = await self.resolve_permissions(user_id)
        if resolved.is_admin:
            return None
        return resolved.viewable_job_ids()

    async def batch_check_permissions(
        self, user_id: int, job_ids: list[int]
    ) -> dict[int, dict[str, bool]]:
        resolved = await self.resolve_permissions(user_id)
        if resolved.is_admin:
            return {job_id: dict(FULL_ACCESS) for job_id in job_ids}

        result: dict[int, dict[str, bool]] = {}
        for job_id in job_ids:
            permission = resolved.for_job(job_id)
            result[job_id] = permission.to_flags() if permission else dict(NO_ACCESS)
        return result

    async def user_job_permissions(
        self, user_id: int, job_ids: list[int] | None = None
    ) -> UserPermissions:
        """The resolved permissions, optionally narrowed to ``job_ids``.

        For admins each requested id is reported with every flag set.
        """
        resolved = await self.resolve_permissions(user_id)
        if resolved.is_admin:
            if not job_ids:
                return resolved
            return UserPermissions(
                is_admin=True,
                permissions=[
                    JobPermission(job_id=job_id, app_name="", **FULL_ACCESS)
                    for job_id in job_ids
                ],
            )

        if job_ids is None:
            return resolved

        wanted = set(job_ids)
        return UserPermissions(
            is_admin=False,
            permissions=[p for p in resolved.permissions if p.job_id in wanted],
        )
