from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...dependencies import get_db, get_permission_service, require_admin
from ...models.user import User
from ...schemas.job import JobPermissionFlags, UserPermissionsResponse
from ...schemas.user import AssignRoles, SetActive, UserResponse, UserRoleResponse
from ...services.admin.permission_service import PermissionService
from ...services.admin.user_service import UserService

router = APIRouter(
    prefix="/admin/users",
    tags=["admin-users"],
    dependencies=[Depends(require_admin)],
)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=list[UserResponse])
async def list_users(
    include_inactive: bool = Query(False),
    service: UserService = Depends(get_user_service),
):
    return await service.list_users(include_inactive=include_inactive)


@router.get("/{user_id}/roles", response_model=list[UserRoleResponse])
async def get_user_roles(user_id: int, service: UserService = Depends(get_user_service)):
    await service.get_user(user_id)
    return await service.get_user_roles(user_id)


@router.put("/{user_id}/roles", response_model=list[UserRoleResponse])
async def assign_roles(
    user_id: int,
    payload: AssignRoles,
    admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.assign_roles(user_id, payload.role_ids, assigned_by=admin.id)


@router.post(
    "/{user_id}/roles/{role_id}",
    response_model=list[UserRoleResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_role(
    user_id: int,
    role_id: int,
    admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return await service.add_role(user_id, role_id, assigned_by=admin.id)


@router.delete("/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_role(
    user_id: int,
    role_id: int,
    service: UserService = Depends(get_user_service),
):
    await service.remove_role(user_id, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/active", response_model=UserResponse)
async def set_active(
    user_id: int,
    payload: SetActive,
    service: UserService = Depends(get_user_service),
):
    return await service.set_active(user_id, payload.is_active)


@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: int,
    service: UserService = Depends(get_user_service),
    permission_service: PermissionService = Depends(get_permission_service),
):
    await service.get_user(user_id)
    resolved = await permission_service.resolve_permissions(user_id)
    return UserPermissionsResponse(
        is_admin=resolved.is_admin,
        permissions=[
            JobPermissionFlags(job_id=p.job_id, app_name=p.app_name, **p.to_flags())
            for p in resolved.permissions
        ],
    )
