import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...crud.role import RoleRepository
from ...crud.user import UserRepository
from ...errors import ConflictError, NotFoundError
from ...models.user import User
from ...schemas.user import UserRoleResponse

logger = logging.getLogger(__name__)


class UserService:
    """Role membership and activation of gateway users."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.role_repo = RoleRepository(session)

    async def list_users(self, include_inactive: bool = False) -> list[User]:
        return await self.user_repo.list_all(include_inactive=include_inactive)

    async def get_user(self, user_id: int) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    async def assign_roles(
        self, user_id: int, role_ids: list[int], assigned_by: int | None = None
    ) -> list[UserRoleResponse]:
        """Make ``role_ids`` the user's complete role set."""
        await self.get_user(user_id)

        wanted = list(dict.fromkeys(role_ids))
        found = {role.id for role in await self.role_repo.get_by_ids(wanted)}
        missing = [role_id for role_id in wanted if role_id not in found]
        if missing:
            raise NotFoundError(
                f"Roles not found: {missing}", details={"role_ids": missing}
            )

        try:
            await self.role_repo.replace_user_roles(user_id, wanted, assigned_by)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Assigned roles %s to user id=%s", wanted, user_id)
        return await self.get_user_roles(user_id)

    async def add_role(
        self, user_id: int, role_id: int, assigned_by: int | None = None
    ) -> list[UserRoleResponse]:
        await self.get_user(user_id)
        if await self.role_repo.get_by_id(role_id) is None:
            raise NotFoundError(f"Role {role_id} not found", details={"role_id": role_id})
        if await self.role_repo.get_user_role(user_id, role_id) is not None:
            raise ConflictError(f"User {user_id} already has role {role_id}")

        try:
            await self.role_repo.assign_to_user(user_id, role_id, assigned_by)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(f"User {user_id} already has role {role_id}") from exc
        return await self.get_user_roles(user_id)

    async def remove_role(self, user_id: int, role_id: int) -> None:
        try:
            removed = await self.role_repo.remove_from_user(user_id, role_id)
            if not removed:
                raise NotFoundError(
                    f"User {user_id} does not have role {role_id}",
                    details={"user_id": user_id, "role_id": role_id},
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def get_user_roles(self, user_id: int) -> list[UserRoleResponse]:
        assignments = await self.role_repo.get_user_roles(user_id)
        return [
            UserRoleResponse(
                role_id=assignment.role.id,
                name=assignment.role.name,
                description=assignment.role.description,
                assigned_at=assignment.assigned_at,
                assigned_by=assignment.assigned_by,
            )
            for assignment in assignments
        ]

    async def set_active(self, user_id: int, is_active: bool) -> User:
        """Activate or deactivate; deactivation applies on the next request."""
        user = await self.get_user(user_id)
        try:
            user = await self.user_repo.set_active(user, is_active)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info("Set user id=%s active=%s", user_id, is_active)
        return user
