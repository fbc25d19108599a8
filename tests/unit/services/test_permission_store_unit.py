"""
Unit tests for PermissionStore

Grant merging and the optimistic retry loop against a mocked unit of work.
"""
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.app.services.dtos import GrantPermissionCommand
from src.app.services.permission_store import PermissionStore
from src.domain.entities import GlobalRole, ResourcePermission
from src.domain.errors import ConcurrentModificationError, NotFoundError, ValidationError

from tests.unit.factories import actor_for, make_user, store_users

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def ownership():
    ownership = MagicMock()
    ownership.resource_owner_tenant = AsyncMock()
    ownership.manager_scope_includes = AsyncMock(return_value=True)
    return ownership


@pytest.fixture
def people(mock_uow, ownership):
    tenant_id = uuid4()
    admin = make_user(tenant_id, GlobalRole.admin)
    employee = make_user(tenant_id, GlobalRole.employee)
    store_users(mock_uow, admin, employee)
    ownership.resource_owner_tenant.return_value = tenant_id
    return admin, employee


def existing_grant(user, actions, **kwargs):
    return ResourcePermission(
        id=kwargs.pop("id", uuid4()),
        tenant_id=user.tenant_id,
        user_id=user.id,
        resource_type="project",
        resource_id="website",
        actions=actions,
        **kwargs,
    )


def grant_command(user, actions, expires_at=None):
    return GrantPermissionCommand(
        user_id=user.id,
        resource_type="project",
        resource_id="website",
        actions=actions,
        expires_at=expires_at,
    )


@pytest.mark.asyncio
async def test_merge_retries_after_lost_version_race(mock_uow, ownership, people):
    admin, employee = people
    first = existing_grant(employee, ["view"], version=1)
    second = existing_grant(employee, ["view", "comment"], id=first.id, version=2)
    mock_uow.resource_permissions.get_by_user_and_resource.side_effect = [first, second]
    mock_uow.resource_permissions.update_if_version.side_effect = [False, True]
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(actor_for(admin), grant_command(employee, ["edit"]))

    assert result.is_ok()
    assert result.value.actions == ["comment", "edit", "view"]
    last_call = mock_uow.resource_permissions.update_if_version.await_args_list[-1]
    assert last_call.args[:2] == (first.id, 2)
    mock_uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_retries_are_bounded(mock_uow, ownership, people):
    admin, employee = people
    mock_uow.resource_permissions.get_by_user_and_resource.return_value = existing_grant(
        employee, ["view"]
    )
    mock_uow.resource_permissions.update_if_version.return_value = False
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW, max_retries=2)

    result = await store.grant(actor_for(admin), grant_command(employee, ["edit"]))

    assert isinstance(result.error, ConcurrentModificationError)
    assert mock_uow.resource_permissions.update_if_version.await_count == 3
    mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_merge_keeps_the_later_expiry(mock_uow, ownership, people):
    admin, employee = people
    mock_uow.resource_permissions.get_by_user_and_resource.return_value = existing_grant(
        employee, ["view"], expires_at=NOW + timedelta(days=30)
    )
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(
        actor_for(admin), grant_command(employee, ["edit"], expires_at=NOW + timedelta(days=1))
    )

    assert result.value.expires_at == NOW + timedelta(days=30)


@pytest.mark.asyncio
async def test_subset_grant_changes_nothing(mock_uow, ownership, people):
    admin, employee = people
    mock_uow.resource_permissions.get_by_user_and_resource.return_value = existing_grant(
        employee, ["edit", "view"]
    )
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(actor_for(admin), grant_command(employee, ["view"]))

    assert result.value.actions == ["edit", "view"]
    mock_uow.resource_permissions.update_if_version.assert_not_awaited()
    mock_uow.audit_events.create.assert_not_called()


@pytest.mark.asyncio
async def test_expired_grant_is_replaced_not_merged(mock_uow, ownership, people):
    admin, employee = people
    mock_uow.resource_permissions.get_by_user_and_resource.return_value = existing_grant(
        employee, ["delete"], expires_at=NOW - timedelta(days=1)
    )
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(actor_for(admin), grant_command(employee, ["view"]))

    assert result.value.actions == ["view"]
    values = mock_uow.resource_permissions.update_if_version.call_args.args[2]
    assert values["active"] is True
    assert values["expires_at"] is None


@pytest.mark.asyncio
async def test_unknown_action_is_rejected(mock_uow, ownership, people):
    admin, employee = people
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW, allowed_actions=["view"])

    result = await store.grant(actor_for(admin), grant_command(employee, ["view", "export"]))

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "INVALID_ACTIONS"


@pytest.mark.asyncio
async def test_unknown_resource_is_not_found(mock_uow, ownership, people):
    admin, employee = people
    ownership.resource_owner_tenant.return_value = None
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(actor_for(admin), grant_command(employee, ["view"]))

    assert isinstance(result.error, NotFoundError)
    assert result.error.code == "RESOURCE_NOT_FOUND"


@pytest.mark.asyncio
async def test_grant_retries_when_actor_row_moved(mock_uow, ownership, people):
    admin, employee = people
    mock_uow.resource_permissions.get_by_user_and_resource.return_value = None
    mock_uow.users.guard_version.side_effect = [False, True]
    store = PermissionStore(mock_uow, ownership, clock=lambda: NOW)

    result = await store.grant(actor_for(admin), grant_command(employee, ["view"]))

    assert result.is_ok()
    assert mock_uow.users.guard_version.await_count == 2
    mock_uow.resource_permissions.create.assert_awaited_once()
    mock_uow.commit.assert_awaited_once()
