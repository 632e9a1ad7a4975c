from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.role import Role
from ..models.user_role import UserRole


class RoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, description: str | None = None) -> Role:
        role = Role(name=name, description=description)
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def get_by_id(self, role_id: int, include_permissions: bool = False) -> Role | None:
        if not include_permissions:
            return await self.session.get(Role, role_id)
        result = await self.session.execute(
            select(Role)
            .where(Role.id == role_id)
            .options(selectinload(Role.job_permissions))
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, role_ids: list[int]) -> list[Role]:
        if not role_ids:
            return []
        result = await self.session.execute(select(Role).where(Role.id.in_(role_ids)))
        return list(result.scalars().all())

    async def get_by_name(self, name: str, exclude_id: int | None = None) -> Role | None:
        query = select(Role).where(Role.name == name)
        if exclude_id is not None:
            query = query.where(Role.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self, include_permissions: bool = False) -> list[Role]:
        query = select(Role).order_by(Role.created_at.desc())
        if include_permissions:
            query = query.options(selectinload(Role.job_permissions))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, role: Role) -> Role:
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete(self, role: Role) -> None:
        await self.session.delete(role)
        await self.session.flush()

    async def get_user_role(self, user_id: int, role_id: int) -> UserRole | None:
        result = await self.session.execute(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id
            )
        )
        return result.scalar_one_or_none()

    async def assign_to_user(self, user_id: int, role_id: int, assigned_by: int | None = None) -> UserRole:
        user_role = UserRole(user_id=user_id, role_id=role_id, assigned_by=assigned_by)
        self.session.add(user_role)
        await self.session.flush()
        await self.session.refresh(user_role)
        return user_role

    async def remove_from_user(self, user_id: int, role_id: int) -> int:
        result = await self.session.execute(
            delete(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id
            )
        )
        await self.session.flush()
        return result.rowcount or 0

    async def replace_user_roles(
        self, user_id: int, role_ids: list[int], assigned_by: int | None = None
    ) -> None:
        await self.session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        self.session.add_all(
            [UserRole(user_id=user_id, role_id=role_id, assigned_by=assigned_by) for role_id in role_ids]
        )
        await self.session.flush()

    async def get_user_roles(self, user_id: int) -> list[UserRole]:
        result = await self.session.execute(
            select(UserRole)
            .where(UserRole.user_id == user_id)
            .options(selectinload(UserRole.role))
            .order_by(UserRole.assigned_at)
        )
        return list(result.scalars().all())

    async def get_role_users(self, role_id: int) -> list[UserRole]:
        result = await self.session.execute(
            select(UserRole)
            .where(UserRole.role_id == role_id)
            .options(selectinload(UserRole.user))
            .order_by(UserRole.assigned_at)
        )
        return list(result.scalars().all())
