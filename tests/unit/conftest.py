
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.get_by_tenant_and_email = AsyncMock(return_value=None)
    uow.users.create = AsyncMock(side_effect=lambda user: user)
    uow.users.update_if_version = AsyncMock(return_value=True)
    uow.users.guard_version = AsyncMock(return_value=True)

    uow.teams = MagicMock()
    uow.teams.list_by_admin = AsyncMock(return_value=[])
    uow.teams.update_if_version = AsyncMock(return_value=True)

    uow.tenants = MagicMock()
    uow.tenants.get_by_id = AsyncMock()

    uow.invitations = MagicMock()
    uow.invitations.get_by_token_hash = AsyncMock(return_value=None)
    uow.invitations.get_pending_by_tenant_and_email = AsyncMock(return_value=None)
    uow.invitations.create = AsyncMock(side_effect=lambda invitation: invitation)
    uow.invitations.transition = AsyncMock(return_value=True)

    uow.resource_permissions = MagicMock()
    uow.resource_permissions.get_by_user_and_resource = AsyncMock(return_value=None)
    uow.resource_permissions.create = AsyncMock(side_effect=lambda permission: permission)
    uow.resource_permissions.update_if_version = AsyncMock(return_value=True)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()
    return uow
