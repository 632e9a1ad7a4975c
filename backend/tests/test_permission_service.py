"""
Tests for PermissionService.

Repositories are mocked; grant rows are plain namespaces so the resolver
and the counting check can be compared on the same data.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.permissions import PermissionKind
from app.errors import AuthorizationDeniedError
from app.services.admin.permission_service import PermissionService


def make_user(user_id=1, is_admin=False, is_active=True):
    return SimpleNamespace(id=user_id, is_admin=is_admin, is_active=is_active)


def grant(job_id, app_name="app-a", view=False, execute=False, edit=False):
    return SimpleNamespace(
        job_id=job_id,
        app_name=app_name,
        can_view=view,
        can_execute=execute,
        can_edit=edit,
    )


def count_from(grants):
    async def count_granting(user_id, job_id, kind):
        return sum(1 for g in grants if g.job_id == job_id and getattr(g, kind.flag))

    return count_granting


@pytest.fixture
def make_service():
    def factory(user, grants=()):
        service = PermissionService(MagicMock())
        service.user_repo = MagicMock()
        service.user_repo.get_by_id = AsyncMock(return_value=user)
        service.grant_repo = MagicMock()
        service.grant_repo.list_for_user = AsyncMock(return_value=list(grants))
        service.grant_repo.count_granting = AsyncMock(side_effect=count_from(grants))
        return service

    return factory


class TestResolvePermissions:
    @pytest.mark.anyio
    async def test_missing_user_resolves_to_nothing(self, make_service):
        service = make_service(None)

        resolved = await service.resolve_permissions(42)

        assert resolved.is_admin is False
        assert resolved.permissions == []
        service.grant_repo.list_for_user.assert_not_awaited()

    @pytest.mark.anyio
    async def test_admin_skips_grant_query(self, make_service):
        service = make_service(make_user(is_admin=True), [grant(1, view=True)])

        resolved = await service.resolve_permissions(1)

        assert resolved.is_admin is True
        assert resolved.permissions == []
        service.grant_repo.list_for_user.assert_not_awaited()

    @pytest.mark.anyio
    async def test_user_without_roles_has_no_permissions(self, make_service):
        service = make_service(make_user())

        resolved = await service.resolve_permissions(1)

        assert resolved.is_admin is False
        assert resolved.permissions == []

    @pytest.mark.anyio
    async def test_inactive_user_resolves_to_nothing(self, make_service):
        service = make_service(make_user(is_active=False), [grant(1, view=True)])

        resolved = await service.resolve_permissions(1)

        assert resolved.permissions == []
        assert resolved.is_admin is False

    @pytest.mark.anyio
    async def test_grants_from_two_roles_are_merged(self, make_service):
        service = make_service(make_user(), [grant(1, view=True), grant(1, execute=True)])

        resolved = await service.resolve_permissions(1)

        assert len(resolved.permissions) == 1
        assert resolved.permissions[0].to_flags() == {
            "can_view": True,
            "can_execute": True,
            "can_edit": False,
        }


class TestAuthorize:
    @pytest.mark.anyio
    async def test_two_roles_scenario(self, make_service):
        service = make_service(make_user(), [grant(1, view=True), grant(1, execute=True)])

        assert await service.authorize(1, 1, "view") is True
        assert await service.authorize(1, 1, "execute") is True
        assert await service.authorize(1, 1, "edit") is False

    @pytest.mark.anyio
    async def test_no_roles_denies_everything(self, make_service):
        service = make_service(make_user())

        for kind in PermissionKind:
            assert await service.authorize(1, 7, kind) is False

    @pytest.mark.anyio
    async def test_missing_user_is_denied(self, make_service):
        service = make_service(None)

        assert await service.authorize(1, 1, PermissionKind.VIEW) is False

    @pytest.mark.anyio
    async def test_inactive_user_is_denied_despite_grants(self, make_service):
        service = make_service(
            make_user(is_active=False), [grant(1, view=True, execute=True, edit=True)]
        )

        for kind in PermissionKind:
            assert await service.authorize(1, 1, kind) is False
        service.grant_repo.count_granting.assert_not_awaited()

    @pytest.mark.anyio
    async def test_inactive_admin_is_denied(self, make_service):
        service = make_service(make_user(is_admin=True, is_active=False))

        assert await service.authorize(1, 1, PermissionKind.VIEW) is False
        assert await service.is_admin(1) is False

    @pytest.mark.anyio
    async def test_active_admin_is_allowed_without_grants(self, make_service):
        service = make_service(make_user(is_admin=True))

        for kind in PermissionKind:
            assert await service.authorize(1, 12345, kind) is True
        service.grant_repo.count_granting.assert_not_awaited()

    @pytest.mark.anyio
    async def test_unknown_kind_is_rejected(self, make_service):
        service = make_service(make_user())

        with pytest.raises(ValueError):
            await service.authorize(1, 1, "delete")

    @pytest.mark.anyio
    async def test_authorize_agrees_with_resolve(self, make_service):
        grants = [
            grant(1, view=True),
            grant(1, edit=True),
            grant(2, execute=True),
            grant(3),
        ]
        service = make_service(make_user(), grants)

        resolved = await service.resolve_permissions(1)
        for job_id in (1, 2, 3, 4):
            for kind in PermissionKind:
                assert await service.authorize(1, job_id, kind) == resolved.allows(job_id, kind)


class TestRequireJobPermission:
    @pytest.mark.anyio
    async def test_denial_raises_with_details(self, make_service):
        service = make_service(make_user())

        with pytest.raises(AuthorizationDeniedError) as exc_info:
            await service.require_job_permission(1, 5, PermissionKind.EXECUTE)

        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"job_id": 5, "permission": "execute"}
        assert exc_info.value.retryable is False

    @pytest.mark.anyio
    async def test_granted_permission_passes(self, make_service):
        service = make_service(make_user(), [grant(5, execute=True)])

        await service.require_job_permission(1, 5, "execute")


class TestPermissionHelpers:
    @pytest.mark.anyio
    async def test_accessible_job_ids(self, make_service):
        service = make_service(make_user(), [grant(1, view=True), grant(2, edit=True)])
        assert await service.accessible_job_ids(1) == {1}

        admin_service = make_service(make_user(is_admin=True))
        assert await admin_service.accessible_job_ids(1) is None

    @pytest.mark.anyio
    async def test_batch_check_permissions(self, make_service):
        service = make_service(make_user(), [grant(1, view=True, execute=True)])

        result = await service.batch_check_permissions(1, [1, 2])

        assert result == {
            1: {"can_view": True, "can_execute": True, "can_edit": False},
            2: {"can_view": False, "can_execute": False, "can_edit": False},
        }

    @pytest.mark.anyio
    async def test_batch_check_permissions_for_admin(self, make_service):
        service = make_service(make_user(is_admin=True))

        result = await service.batch_check_permissions(1, [3])

        assert result == {3: {"can_view": True, "can_execute": True, "can_edit": True}}

    @pytest.mark.anyio
    async def test_user_job_permissions_narrows_to_requested_jobs(self, make_service):
        service = make_service(make_user(), [grant(1, view=True), grant(2, view=True)])

        resolved = await service.user_job_permissions(1, [2, 3])

        assert [p.job_id for p in resolved.permissions] == [2]

    @pytest.mark.anyio
    async def test_user_job_permissions_for_admin_lists_requested_jobs(self, make_service):
        service = make_service(make_user(is_admin=True))

        resolved = await service.user_job_permissions(1, [4, 5])

        assert resolved.is_admin is True
        assert [p.job_id for p in resolved.permissions] == [4, 5]
        assert all(p.can_edit for p in resolved.permissions)
