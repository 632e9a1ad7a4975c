from .base import Base
from .user import User
from .role import Role
from .user_role import UserRole
from .role_job_permission import RoleJobPermission
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "Role",
    "UserRole",
    "RoleJobPermission",
    "AuditLog",
]
