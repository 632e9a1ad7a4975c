import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.role import RoleRepository
from ...crud.role_job_permission import RoleJobPermissionRepository
from ...errors import ConflictError, NotFoundError
from ...models.role import Role
from ...models.role_job_permission import RoleJobPermission
from ...schemas.role import (
    BatchSetPermissions,
    JobPermissionInput,
    RoleCreate,
    RoleUpdate,
    RoleUserResponse,
)

logger = logging.getLogger(__name__)


class RoleService:
    """Role CRUD and the per-job grants attached to each role."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.role_repo = RoleRepository(session)
        self.grant_repo = RoleJobPermissionRepository(session)

    async def create_role(self, data: RoleCreate) -> Role:
        if await self.role_repo.get_by_name(data.name) is not None:
            raise ConflictError(f"Role '{data.name}' already exists")
        try:
            role = await self.role_repo.create(data.name, data.description)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(f"Role '{data.name}' already exists") from exc
        logger.info("Created role id=%s name=%s", role.id, role.name)
        return role

    async def list_roles(self, include_permissions: bool = False) -> list[Role]:
        return await self.role_repo.list_all(include_permissions=include_permissions)

    async def get_role(self, role_id: int, include_permissions: bool = False) -> Role:
        role = await self.role_repo.get_by_id(role_id, include_permissions=include_permissions)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found", details={"role_id": role_id})
        return role

    async def update_role(self, role_id: int, data: RoleUpdate) -> Role:
        role = await self.get_role(role_id)
        if data.name is not None and data.name != role.name:
            if await self.role_repo.get_by_name(data.name, exclude_id=role_id) is not None:
                raise ConflictError(f"Role '{data.name}' already exists")
            role.name = data.name
        if data.description is not None:
            role.description = data.description
        try:
            role = await self.role_repo.update(role)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(f"Role '{data.name}' already exists") from exc
        return role

    async def delete_role(self, role_id: int) -> None:
        role = await self.get_role(role_id)
        try:
            await self.role_repo.delete(role)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Deleted role id=%s", role_id)

    async def set_job_permission(
        self, role_id: int, data: JobPermissionInput
    ) -> list[RoleJobPermission]:
        await self.get_role(role_id)
        try:
            await self.grant_repo.upsert(role_id, data)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.grant_repo.list_for_role(role_id)

    async def get_role_permissions(self, role_id: int) -> list[RoleJobPermission]:
        await self.get_role(role_id)
        return await self.grant_repo.list_for_role(role_id)

    async def remove_job_permission(self, role_id: int, job_id: int) -> None:
        await self.get_role(role_id)
        try:
            removed = await self.grant_repo.remove(role_id, job_id)
            if not removed:
                raise NotFoundError(
                    f"Role {role_id} has no permission for job {job_id}",
                    details={"role_id": role_id, "job_id": job_id},
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def batch_set_permissions(
        self, role_id: int, data: BatchSetPermissions
    ) -> list[RoleJobPermission]:
        """Replace every grant of the role in a single transaction.

        Readers see either the old set or the new one, never an empty role.
        """
        await self.get_role(role_id)
        try:
            await self.grant_repo.replace_for_role(role_id, data.permissions)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "Replaced permissions of role id=%s with %s entries",
            role_id,
            len(data.permissions),
        )
        return await self.grant_repo.list_for_role(role_id)

    async def get_role_users(self, role_id: int) -> list[RoleUserResponse]:
        await self.get_role(role_id)
        assignments = await self.role_repo.get_role_users(role_id)
        return [
            RoleUserResponse(
                user_id=assignment.user.id,
                username=assignment.user.username,
                email=assignment.user.email,
                is_active=assignment.user.is_active,
                assigned_at=assignment.assigned_at,
                assigned_by=assignment.assigned_by,
            )
            for assignment in assignments
        ]
