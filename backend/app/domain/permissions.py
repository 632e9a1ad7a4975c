"""
Job permission domain types and the role merge.

A user's effective permission on a job is the OR of every role grant they
hold for that job, flag by flag. The merge is a pure reduction over the
fetched grant rows so it can be tested without a database and is
recomputed on every request.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class PermissionKind(str, Enum):
    VIEW = "view"
    EXECUTE = "execute"
    EDIT = "edit"

    @property
    def flag(self) -> str:
        return f"can_{self.value}"


class JobGrant(Protocol):
    job_id: int
    app_name: str
    can_view: bool
    can_execute: bool
    can_edit: bool


@dataclass(frozen=True)
class JobPermission:
    job_id: int
    app_name: str
    can_view: bool = False
    can_execute: bool = False
    can_edit: bool = False

    def allows(self, kind: PermissionKind) -> bool:
        return bool(getattr(self, kind.flag))

    def merged_with(self, other: JobGrant) -> "JobPermission":
        return JobPermission(
            job_id=self.job_id,
            app_name=other.app_name,
            can_view=self.can_view or bool(other.can_view),
            can_execute=self.can_execute or bool(other.can_execute),
            can_edit=self.can_edit or bool(other.can_edit),
        )

    def to_flags(self) -> dict[str, bool]:
        return {
            "can_view": self.can_view,
            "can_execute": self.can_execute,
            "can_edit": self.can_edit,
        }


FULL_ACCESS = {"can_view": True, "can_execute": True, "can_edit": True}
NO_ACCESS = {"can_view": False, "can_execute": False, "can_edit": False}


@dataclass(frozen=True)
class UserPermissions:
    is_admin: bool
    permissions: list[JobPermission] = field(default_factory=list)

    @classmethod
    def denied(cls) -> "UserPermissions":
        return cls(is_admin=False, permissions=[])

    @classmethod
    def admin(cls) -> "UserPermissions":
        return cls(is_admin=True, permissions=[])

    def for_job(self, job_id: int) -> JobPermission | None:
        for permission in self.permissions:
            if permission.job_id == job_id:
                return permission
        return None

    def allows(self, job_id: int, kind: PermissionKind) -> bool:
        if self.is_admin:
            return True
        permission = self.for_job(job_id)
        return permission is not None and permission.allows(kind)

    def viewable_job_ids(self) -> set[int]:
        return {p.job_id for p in self.permissions if p.can_view}

    def viewable_app_names(self) -> set[str]:
        return {p.app_name for p in self.permissions if p.can_view}


def merge_job_permissions(grants: Iterable[JobGrant]) -> list[JobPermission]:
    """Reduce role grant rows to one effective permission per job.

    Flags are OR-ed across rows sharing a ``job_id``. ``app_name`` comes
    from whichever row was seen last for the job; rows for one job are
    expected to agree on it. The result is ordered by first appearance.
    """
    merged: dict[int, JobPermission] = {}
    for grant in grants:
        existing = merged.get(grant.job_id)
        if existing is None:
            merged[grant.job_id] = JobPermission(
                job_id=grant.job_id,
                app_name=grant.app_name,
                can_view=bool(grant.can_view),
                can_execute=bool(grant.can_execute),
                can_edit=bool(grant.can_edit),
            )
        else:
            merged[grant.job_id] = existing.merged_with(grant)
    return list(merged.values())
