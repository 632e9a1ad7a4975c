from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.permissions import PermissionKind
from ..models.role_job_permission import RoleJobPermission
from ..models.user_role import UserRole
from ..schemas.role import JobPermissionInput


class RoleJobPermissionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(self, role_id: int, data: JobPermissionInput) -> None:
        """Create or overwrite the single grant for (role_id, job_id)."""
        values = {
            "app_name": data.app_name,
            "can_view": data.can_view,
            "can_execute": data.can_execute,
            "can_edit": data.can_edit,
        }
        statement = insert(RoleJobPermission).values(
            role_id=role_id, job_id=data.job_id, **values
        )
        statement = statement.on_conflict_do_update(
            constraint="uq_role_job_permissions_role_id_job_id",
            set_={**values, "updated_at": func.now()},
        )
        await self.session.execute(statement)
        await self.session.flush()

    async def list_for_role(self, role_id: int) -> list[RoleJobPermission]:
        result = await self.session.execute(
            select(RoleJobPermission)
            .where(RoleJobPermission.role_id == role_id)
            .order_by(RoleJobPermission.job_id)
        )
        return list(result.scalars().all())

    async def remove(self, role_id: int, job_id: int) -> int:
        result = await self.session.execute(
            delete(RoleJobPermission).where(
                RoleJobPermission.role_id == role_id,
                RoleJobPermission.job_id == job_id,
            )
        )
        await self.session.flush()
        return result.rowcount or 0

    async def replace_for_role(
        self, role_id: int, permissions: Sequence[JobPermissionInput]
    ) -> None:
        """Delete every grant of the role and insert the new set.

        Runs inside the caller's transaction; the caller commits.
        """
        await self.session.execute(
            delete(RoleJobPermission).where(RoleJobPermission.role_id == role_id)
        )
        self.session.add_all(
            [
                RoleJobPermission(
                    role_id=role_id,
                    job_id=p.job_id,
                    app_name=p.app_name,
                    can_view=p.can_view,
                    can_execute=p.can_execute,
                    can_edit=p.can_edit,
                )
                for p in permissions
            ]
        )
        await self.session.flush()

    async def list_for_user(self, user_id: int) -> list[RoleJobPermission]:
        """Every grant row of every role the user holds."""
        result = await self.session.execute(
            select(RoleJobPermission)
            .join(UserRole, UserRole.role_id == RoleJobPermission.role_id)
            .where(UserRole.user_id == user_id)
        )
        return list(result.scalars().all())

    async def count_granting(self, user_id: int, job_id: int, kind: PermissionKind) -> int:
        """Number of the user's roles granting ``kind`` on ``job_id``."""
        flag = getattr(RoleJobPermission, kind.flag)
        result = await self.session.execute(
            select(func.count())
            .select_from(RoleJobPermission)
            .join(UserRole, UserRole.role_id == RoleJobPermission.role_id)
            .where(
                UserRole.user_id == user_id,
                RoleJobPermission.job_id == job_id,
                flag.is_(True),
            )
        )
        return int(result.scalar_one())
