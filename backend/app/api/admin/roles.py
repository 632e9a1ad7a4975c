from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...dependencies import get_db, require_admin
from ...schemas.role import (
    BatchSetPermissions,
    JobPermissionInput,
    JobPermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    RoleUserResponse,
    RoleWithPermissions,
)
from ...services.admin.role_service import RoleService

router = APIRouter(
    prefix="/admin/roles",
    tags=["admin-roles"],
    dependencies=[Depends(require_admin)],
)


def get_role_service(db: AsyncSession = Depends(get_db)) -> RoleService:
    return RoleService(db)


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(payload: RoleCreate, service: RoleService = Depends(get_role_service)):
    return await service.create_role(payload)


@router.get("", response_model=list[RoleWithPermissions])
async def list_roles(service: RoleService = Depends(get_role_service)):
    return await service.list_roles(include_permissions=True)


@router.get("/{role_id}", response_model=RoleWithPermissions)
async def get_role(role_id: int, service: RoleService = Depends(get_role_service)):
    return await service.get_role(role_id, include_permissions=True)


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    payload: RoleUpdate,
    service: RoleService = Depends(get_role_service),
):
    return await service.update_role(role_id, payload)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: int, service: RoleService = Depends(get_role_service)):
    await service.delete_role(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{role_id}/permissions", response_model=list[JobPermissionResponse])
async def get_role_permissions(role_id: int, service: RoleService = Depends(get_role_service)):
    return await service.get_role_permissions(role_id)


@router.post("/{role_id}/permissions", response_model=list[JobPermissionResponse])
async def set_job_permission(
    role_id: int,
    payload: JobPermissionInput,
    service: RoleService = Depends(get_role_service),
):
    return await service.set_job_permission(role_id, payload)


@router.put("/{role_id}/permissions", response_model=list[JobPermissionResponse])
async def batch_set_permissions(
    role_id: int,
    payload: BatchSetPermissions,
    service: RoleService = Depends(get_role_service),
):
    return await service.batch_set_permissions(role_id, payload)


@router.delete("/{role_id}/permissions/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_job_permission(
    role_id: int,
    job_id: int,
    service: RoleService = Depends(get_role_service),
):
    await service.remove_job_permission(role_id, job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{role_id}/users", response_model=list[RoleUserResponse])
async def get_role_users(role_id: int, service: RoleService = Depends(get_role_service)):
    return await service.get_role_users(role_id)
