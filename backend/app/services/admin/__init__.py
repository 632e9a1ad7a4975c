from .permission_service import PermissionService
from .role_service import RoleService
from .user_service import UserService

__all__ = ["PermissionService", "RoleService", "UserService"]
