from fastapi import APIRouter

from . import jobs
from .admin import audit as admin_audit
from .admin import roles as admin_roles
from .admin import users as admin_users

router = APIRouter(prefix="/api")

_job_routers = [
    jobs.router,
]

_admin_routers = [
    admin_roles.router,
    admin_users.router,
    admin_audit.router,
]

for _router in [*_job_routers, *_admin_routers]:
    router.include_router(_router)
