"""
Schema checks for the RBAC tables.

Compares the declarative metadata with the constraint names the upsert
and the migration depend on; no database is needed.
"""
import pytest
from sqlalchemy import UniqueConstraint

from app.models import AuditLog, Base, RoleJobPermission, UserRole


def unique_constraints(table):
    return {
        constraint.name: tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    }


def test_tables_are_registered():
    assert set(Base.metadata.tables) == {
        "users",
        "roles",
        "user_roles",
        "role_job_permissions",
        "audit_logs",
    }


def test_named_unique_constraints():
    tables = Base.metadata.tables

    assert unique_constraints(tables["users"]) == {
        "uq_users_username": ("username",),
        "uq_users_email": ("email",),
    }
    assert unique_constraints(tables["roles"]) == {"uq_roles_name": ("name",)}
    assert unique_constraints(UserRole.__table__) == {
        "uq_user_roles_user_id_role_id": ("user_id", "role_id"),
    }
    assert unique_constraints(RoleJobPermission.__table__) == {
        "uq_role_job_permissions_role_id_job_id": ("role_id", "job_id"),
    }


def test_role_deletion_cascades_to_grants_and_memberships():
    grant_fk = next(iter(RoleJobPermission.__table__.c.role_id.foreign_keys))
    membership_fk = next(iter(UserRole.__table__.c.role_id.foreign_keys))

    assert grant_fk.ondelete == "CASCADE"
    assert membership_fk.ondelete == "CASCADE"


def test_audit_rows_survive_user_deletion():
    user_fk = next(iter(AuditLog.__table__.c.user_id.foreign_keys))

    assert user_fk.ondelete == "SET NULL"


def test_audit_result_is_validated():
    with pytest.raises(ValueError, match="Invalid audit result"):
        AuditLog(user_id=1, action="EXECUTE_JOB", result="MAYBE")
