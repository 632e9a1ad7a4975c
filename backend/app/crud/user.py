from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_ids(self, user_ids: list[int]) -> list[User]:
        if not user_ids:
            return []
        result = await self.session.execute(select(User).where(User.id.in_(user_ids)))
        return list(result.scalars().all())

    async def list_all(self, include_inactive: bool = False) -> list[User]:
        query = select(User).order_by(User.created_at.desc())
        if not include_inactive:
            query = query.where(User.is_active)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def set_active(self, user: User, is_active: bool) -> User:
        user.is_active = is_active
        await self.session.flush()
        await self.session.refresh(user)
        return user
