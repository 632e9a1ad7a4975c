"""Tests for the OR-merge of role grants into effective job permissions."""
import itertools
from types import SimpleNamespace

from app.domain.permissions import (
    JobPermission,
    PermissionKind,
    UserPermissions,
    merge_job_permissions,
)


def grant(job_id, app_name="app-a", view=False, execute=False, edit=False):
    return SimpleNamespace(
        job_id=job_id,
        app_name=app_name,
        can_view=view,
        can_execute=execute,
        can_edit=edit,
    )


def test_merge_of_no_grants_is_empty():
    assert merge_job_permissions([]) == []


def test_flags_are_or_ed_across_roles():
    merged = merge_job_permissions([grant(1, view=True), grant(1, execute=True)])

    assert merged == [
        JobPermission(job_id=1, app_name="app-a", can_view=True, can_execute=True, can_edit=False)
    ]


def test_false_row_never_revokes_a_grant():
    merged = merge_job_permissions([grant(1, edit=True), grant(1)])

    assert merged[0].can_edit is True


def test_jobs_are_kept_separate():
    merged = merge_job_permissions(
        [grant(1, view=True), grant(2, "app-b", execute=True), grant(1, edit=True)]
    )

    by_job = {p.job_id: p for p in merged}
    assert set(by_job) == {1, 2}
    assert by_job[1].to_flags() == {"can_view": True, "can_execute": False, "can_edit": True}
    assert by_job[2].app_name == "app-b"
    assert by_job[2].to_flags() == {"can_view": False, "can_execute": True, "can_edit": False}


def test_merge_is_order_independent():
    grants = [
        grant(1, view=True),
        grant(1, execute=True),
        grant(2, edit=True),
        grant(2, view=True),
    ]
    expected = {p.job_id: p.to_flags() for p in merge_job_permissions(grants)}

    for ordering in itertools.permutations(grants):
        merged = {p.job_id: p.to_flags() for p in merge_job_permissions(ordering)}
        assert merged == expected


def test_permission_kind_maps_to_flag():
    assert PermissionKind.VIEW.flag == "can_view"
    assert PermissionKind("execute").flag == "can_execute"
    assert PermissionKind.EDIT.flag == "can_edit"


def test_user_permissions_allows():
    resolved = UserPermissions(
        is_admin=False,
        permissions=[JobPermission(job_id=1, app_name="app-a", can_view=True)],
    )

    assert resolved.allows(1, PermissionKind.VIEW) is True
    assert resolved.allows(1, PermissionKind.EDIT) is False
    assert resolved.allows(99, PermissionKind.VIEW) is False
    assert UserPermissions.admin().allows(99, PermissionKind.EDIT) is True
    assert UserPermissions.denied().allows(1, PermissionKind.VIEW) is False


def test_viewable_sets_ignore_non_view_grants():
    resolved = UserPermissions(
        is_admin=False,
        permissions=[
            JobPermission(job_id=1, app_name="app-a", can_view=True),
            JobPermission(job_id=2, app_name="app-b", can_execute=True),
        ],
    )

    assert resolved.viewable_job_ids() == {1}
    assert resolved.viewable_app_names() == {"app-a"}
