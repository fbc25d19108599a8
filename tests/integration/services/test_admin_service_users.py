import pytest
from sqlmodel import select

from src.app.services.dtos import CreateTeamCommand, CreateUserCommand, GrantPermissionCommand
from src.domain.entities import AuditEvent, GlobalRole, ResourcePermission, Team, TeamMember, User
from src.domain.errors import (
    AuthorizationError,
    ConflictError,
    InactiveActorError,
    TenantIsolationError,
    ValidationError,
)


@pytest.mark.asyncio
async def test_admin_promotes_employee_to_manager(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    employee = seeded.user("acme_employee")

    result = await service.update_user_role(admin, employee.id, GlobalRole.manager)

    assert result.is_ok()
    assert result.value.global_role == GlobalRole.manager

    await db_session.refresh(employee)
    assert employee.global_role == GlobalRole.manager
    assert employee.version == 2

    events = (
        await db_session.exec(select(AuditEvent).where(AuditEvent.action == "role_changed"))
    ).all()
    assert len(events) == 1
    assert events[0].actor_id == admin.user_id
    assert events[0].event_metadata["old_role"] == "employee"
    assert events[0].event_metadata["new_role"] == "manager"


@pytest.mark.asyncio
@pytest.mark.parametrize("actor_key", ["acme_root", "acme_admin", "acme_manager", "acme_employee"])
async def test_promotion_to_superadmin_always_fails_validation(service, seeded, actor_key):
    result = await service.update_user_role(
        seeded.actor(actor_key), seeded.user("acme_employee2").id, GlobalRole.superadmin
    )

    assert result.is_err()
    assert isinstance(result.error, ValidationError)


@pytest.mark.asyncio
async def test_admin_cannot_assign_admin_role(service, seeded):
    result = await service.update_user_role(
        seeded.actor("acme_admin"), seeded.user("acme_manager").id, GlobalRole.admin
    )

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "ROLE_ESCALATION"


@pytest.mark.asyncio
async def test_admin_cannot_change_peer_admin(service, seeded):
    result = await service.update_user_role(
        seeded.actor("acme_admin"), seeded.user("acme_admin2").id, GlobalRole.employee
    )

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "ROLE_ESCALATION"


@pytest.mark.asyncio
async def test_superadmin_can_make_admin(service, seeded):
    result = await service.update_user_role(
        seeded.actor("acme_root"), seeded.user("acme_manager").id, GlobalRole.admin
    )

    assert result.is_ok()
    assert result.value.global_role == GlobalRole.admin


@pytest.mark.asyncio
async def test_cannot_change_own_role(service, seeded):
    admin = seeded.actor("acme_root")

    result = await service.update_user_role(admin, admin.user_id, GlobalRole.admin)

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "SELF_ROLE_CHANGE"


@pytest.mark.asyncio
async def test_manager_cannot_change_roles(service, seeded):
    result = await service.update_user_role(
        seeded.actor("acme_manager"), seeded.user("acme_employee").id, GlobalRole.employee
    )

    assert isinstance(result.error, AuthorizationError)


@pytest.mark.asyncio
async def test_cross_tenant_role_change_is_isolation_error(service, seeded):
    """A tenant-2 admin targeting a tenant-1 user, whatever their rank"""
    result = await service.update_user_role(
        seeded.actor("globex_admin"), seeded.user("acme_employee").id, GlobalRole.manager
    )

    assert isinstance(result.error, TenantIsolationError)


@pytest.mark.asyncio
async def test_unchanged_role_is_a_no_op(service, seeded, db_session):
    employee = seeded.user("acme_employee")

    result = await service.update_user_role(
        seeded.actor("acme_admin"), employee.id, GlobalRole.employee
    )

    assert result.is_ok()
    await db_session.refresh(employee)
    assert employee.version == 1


@pytest.mark.asyncio
async def test_demoting_manager_clears_team_admin(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    manager = seeded.user("acme_manager")
    created = await service.create_team(
        admin, CreateTeamCommand(name="Dev Team", team_admin_id=manager.id)
    )
    assert created.value.team_admin_id == manager.id

    result = await service.update_user_role(admin, manager.id, GlobalRole.employee)

    assert result.is_ok()
    team = await db_session.get(Team, created.value.id)
    assert team.team_admin_id is None


@pytest.mark.asyncio
async def test_stale_token_role_is_not_trusted(service, seeded, db_session):
    """The actor's role is re-read from storage, not taken from the caller"""
    manager = seeded.user("acme_manager")
    forged = seeded.actor("acme_manager").model_copy(update={"global_role": GlobalRole.admin})

    result = await service.update_user_role(
        forged, seeded.user("acme_employee").id, GlobalRole.manager
    )

    assert isinstance(result.error, AuthorizationError)
    await db_session.refresh(manager)
    assert manager.global_role == GlobalRole.manager


@pytest.mark.asyncio
async def test_disabled_admin_is_rejected(service, seeded):
    root = seeded.actor("acme_root")
    admin = seeded.actor("acme_admin")
    assert (await service.disable_user(root, admin.user_id)).is_ok()

    result = await service.update_user_role(
        admin, seeded.user("acme_employee").id, GlobalRole.manager
    )

    assert isinstance(result.error, InactiveActorError)


@pytest.mark.asyncio
async def test_disable_and_enable_user(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    employee = seeded.user("acme_employee")

    disabled = await service.disable_user(admin, employee.id)
    again = await service.disable_user(admin, employee.id)
    enabled = await service.enable_user(admin, employee.id)

    assert disabled.value.active is False
    assert again.is_ok()
    assert enabled.value.active is True
    await db_session.refresh(employee)
    assert employee.active is True
    assert employee.version == 3


@pytest.mark.asyncio
async def test_cannot_disable_self(service, seeded):
    admin = seeded.actor("acme_admin")

    result = await service.disable_user(admin, admin.user_id)

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "SELF_TARGET"


@pytest.mark.asyncio
async def test_admin_cannot_disable_superadmin(service, seeded):
    result = await service.disable_user(seeded.actor("acme_admin"), seeded.user("acme_root").id)

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "ROLE_ESCALATION"


@pytest.mark.asyncio
async def test_create_user(service, seeded, db_session):
    admin = seeded.actor("acme_admin")

    result = await service.create_user(
        admin,
        CreateUserCommand(
            email="  New.Hire@Acme.com ",
            full_name="New Hire",
            global_role=GlobalRole.manager,
            password="long-enough-password",
        ),
    )

    assert result.is_ok()
    assert result.value.email == "new.hire@acme.com"
    user = await db_session.get(User, result.value.id)
    assert user.password_hash.startswith("$2")
    assert user.tenant_id == admin.tenant_id


@pytest.mark.asyncio
async def test_create_user_rejects_duplicate_email(service, seeded):
    result = await service.create_user(
        seeded.actor("acme_admin"),
        CreateUserCommand(email="employee@acme.com", full_name="Dup", password="password123"),
    )

    assert isinstance(result.error, ConflictError)
    assert result.error.code == "USER_EXISTS"


@pytest.mark.asyncio
async def test_create_user_rejects_short_password(service, seeded):
    result = await service.create_user(
        seeded.actor("acme_admin"),
        CreateUserCommand(email="short@acme.com", full_name="Short", password="short"),
    )

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "INVALID_PASSWORD"


@pytest.mark.asyncio
async def test_create_user_rejects_equal_rank(service, seeded):
    result = await service.create_user(
        seeded.actor("acme_admin"),
        CreateUserCommand(
            email="peer@acme.com",
            full_name="Peer",
            global_role=GlobalRole.admin,
            password="password123",
        ),
    )

    assert result.error.code == "ROLE_ESCALATION"


@pytest.mark.asyncio
async def test_remove_user_strips_memberships_and_grants(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    manager = seeded.user("acme_manager")
    team = await service.create_team(
        admin, CreateTeamCommand(name="Ops", team_admin_id=manager.id)
    )
    await service.add_user_to_team(admin, team.value.id, manager.id)
    await service.grant_resource_permission(
        admin,
        GrantPermissionCommand(
            user_id=manager.id,
            resource_type="project",
            resource_id="acme-website",
            actions=["view"],
        ),
    )

    result = await service.remove_user(admin, manager.id)

    assert result.is_ok()
    assert result.value.active is False
    await db_session.refresh(manager)
    assert manager.active is False
    members = (
        await db_session.exec(select(TeamMember).where(TeamMember.user_id == manager.id))
    ).all()
    assert members == []
    grants = (
        await db_session.exec(
            select(ResourcePermission).where(ResourcePermission.user_id == manager.id)
        )
    ).all()
    assert [g.active for g in grants] == [False]
    refreshed_team = await db_session.get(Team, team.value.id)
    assert refreshed_team.team_admin_id is None


@pytest.mark.asyncio
async def test_tenant_users_lists_only_own_tenant(service, seeded):
    result = await service.get_tenant_users(seeded.actor("globex_admin"))

    assert result.is_ok()
    assert {u.email for u in result.value} == {
        "admin@globex.com",
        "manager@globex.com",
        "employee@globex.com",
    }


@pytest.mark.asyncio
async def test_tenant_users_requires_admin(service, seeded):
    result = await service.get_tenant_users(seeded.actor("acme_manager"))

    assert isinstance(result.error, AuthorizationError)
