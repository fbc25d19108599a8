from uuid import uuid4

import pytest
from sqlmodel import select

from src.app.services.dtos import CreateTeamCommand, UpdateTeamCommand
from src.domain.entities import GlobalRole, Team, TeamMember, TeamRole
from src.domain.errors import (
    AuthorizationError,
    ConflictError,
    InactiveActorError,
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)


async def _create_team(service, seeded, name="Dev Team", **kwargs):
    result = await service.create_team(
        seeded.actor("acme_admin"), CreateTeamCommand(name=name, **kwargs)
    )
    assert result.is_ok(), result
    return result.value


@pytest.mark.asyncio
async def test_create_team_starts_empty(service, seeded):
    team = await _create_team(service, seeded, description="Product engineering")

    assert team.name == "Dev Team"
    assert team.team_admin_id is None

    members = await service.get_team_members(seeded.actor("acme_admin"), team.id)
    assert members.value == []


@pytest.mark.asyncio
async def test_team_names_are_unique_per_tenant(service, seeded):
    await _create_team(service, seeded)

    duplicate = await service.create_team(
        seeded.actor("acme_admin"), CreateTeamCommand(name="Dev Team")
    )
    other_tenant = await service.create_team(
        seeded.actor("globex_admin"), CreateTeamCommand(name="Dev Team")
    )

    assert isinstance(duplicate.error, ConflictError)
    assert duplicate.error.code == "TEAM_NAME_TAKEN"
    assert other_tenant.is_ok()


@pytest.mark.asyncio
async def test_manager_cannot_create_team(service, seeded):
    result = await service.create_team(
        seeded.actor("acme_manager"), CreateTeamCommand(name="Shadow Team")
    )

    assert isinstance(result.error, AuthorizationError)


@pytest.mark.asyncio
async def test_assign_manager_as_team_admin(service, seeded):
    team = await _create_team(service, seeded)
    manager = seeded.user("acme_manager")

    result = await service.assign_team_admin(seeded.actor("acme_admin"), team.id, manager.id)
    repeated = await service.assign_team_admin(seeded.actor("acme_admin"), team.id, manager.id)

    assert result.value.team_admin_id == manager.id
    assert repeated.is_ok()
    assert repeated.value.team_admin_id == manager.id


@pytest.mark.asyncio
@pytest.mark.parametrize("candidate_key", ["acme_employee", "acme_admin2"])
async def test_team_admin_must_be_manager(service, seeded, candidate_key):
    team = await _create_team(service, seeded)

    result = await service.assign_team_admin(
        seeded.actor("acme_admin"), team.id, seeded.user(candidate_key).id
    )

    assert isinstance(result.error, ValidationError)
    assert result.error.message == "team admin must hold manager role"


@pytest.mark.asyncio
async def test_team_admin_from_other_tenant_is_isolation_error(service, seeded):
    team = await _create_team(service, seeded)

    result = await service.assign_team_admin(
        seeded.actor("acme_admin"), team.id, seeded.user("globex_manager").id
    )

    assert isinstance(result.error, TenantIsolationError)


@pytest.mark.asyncio
async def test_create_team_with_non_manager_admin_fails(service, seeded, db_session):
    result = await service.create_team(
        seeded.actor("acme_admin"),
        CreateTeamCommand(name="QA", team_admin_id=seeded.user("acme_employee").id),
    )

    assert isinstance(result.error, ValidationError)
    teams = (await db_session.exec(select(Team).where(Team.name == "QA"))).all()
    assert teams == []


@pytest.mark.asyncio
async def test_clear_team_admin(service, seeded):
    manager = seeded.user("acme_manager")
    team = await _create_team(service, seeded, team_admin_id=manager.id)

    result = await service.assign_team_admin(seeded.actor("acme_admin"), team.id, None)

    assert result.is_ok()
    assert result.value.team_admin_id is None


@pytest.mark.asyncio
async def test_membership_lifecycle(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    employee = seeded.user("acme_employee")
    team = await _create_team(service, seeded)

    added = await service.add_user_to_team(admin, team.id, employee.id, TeamRole.lead)
    duplicate = await service.add_user_to_team(admin, team.id, employee.id)

    assert added.value.team_role == TeamRole.lead
    assert added.value.email == "employee@acme.com"
    assert added.value.global_role == GlobalRole.employee
    assert isinstance(duplicate.error, ConflictError)

    members = await service.get_team_members(admin, team.id)
    assert [m.user_id for m in members.value] == [employee.id]

    removed = await service.remove_user_from_team(admin, added.value.id)
    assert removed.is_ok()
    rows = (await db_session.exec(select(TeamMember))).all()
    assert rows == []


@pytest.mark.asyncio
async def test_disabled_user_cannot_join_team(service, seeded):
    admin = seeded.actor("acme_admin")
    employee = seeded.user("acme_employee")
    team = await _create_team(service, seeded)
    await service.disable_user(admin, employee.id)

    result = await service.add_user_to_team(admin, team.id, employee.id)

    assert isinstance(result.error, ValidationError)
    assert result.error.code == "USER_INACTIVE"


@pytest.mark.asyncio
async def test_cross_tenant_member_is_isolation_error(service, seeded):
    team = await _create_team(service, seeded)

    result = await service.add_user_to_team(
        seeded.actor("acme_admin"), team.id, seeded.user("globex_employee").id
    )

    assert isinstance(result.error, TenantIsolationError)


@pytest.mark.asyncio
async def test_team_admin_manages_own_team_only(service, seeded):
    manager = seeded.user("acme_manager")
    own = await _create_team(service, seeded, name="Own", team_admin_id=manager.id)
    other = await _create_team(service, seeded, name="Other")
    employee = seeded.user("acme_employee")

    own_add = await service.add_user_to_team(seeded.actor("acme_manager"), own.id, employee.id)
    other_add = await service.add_user_to_team(
        seeded.actor("acme_manager"), other.id, employee.id
    )
    own_view = await service.get_team_members(seeded.actor("acme_manager"), own.id)
    other_view = await service.get_team_members(seeded.actor("acme_manager"), other.id)

    assert own_add.is_ok()
    assert isinstance(other_add.error, AuthorizationError)
    assert len(own_view.value) == 1
    assert isinstance(other_view.error, AuthorizationError)


@pytest.mark.asyncio
async def test_team_lead_gets_no_management_rights(service, seeded):
    admin = seeded.actor("acme_admin")
    lead = seeded.user("acme_employee")
    team = await _create_team(service, seeded)
    await service.add_user_to_team(admin, team.id, lead.id, TeamRole.lead)

    result = await service.add_user_to_team(
        seeded.actor("acme_employee"), team.id, seeded.user("acme_employee2").id
    )

    assert isinstance(result.error, AuthorizationError)


@pytest.mark.asyncio
async def test_removing_team_admin_member_clears_admin(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    manager = seeded.user("acme_manager")
    team = await _create_team(service, seeded, team_admin_id=manager.id)
    member = await service.add_user_to_team(admin, team.id, manager.id)

    await service.remove_user_from_team(admin, member.value.id)

    stored = await db_session.get(Team, team.id)
    assert stored.team_admin_id is None


@pytest.mark.asyncio
async def test_update_and_delete_team(service, seeded, db_session):
    admin = seeded.actor("acme_admin")
    team = await _create_team(service, seeded)
    await _create_team(service, seeded, name="Taken")
    await service.add_user_to_team(admin, team.id, seeded.user("acme_employee").id)

    renamed = await service.update_team(admin, team.id, UpdateTeamCommand(name="Platform"))
    clash = await service.update_team(admin, team.id, UpdateTeamCommand(name="Taken"))
    deleted = await service.delete_team(admin, team.id)
    missing = await service.get_team_members(admin, team.id)

    assert renamed.value.name == "Platform"
    assert isinstance(clash.error, ConflictError)
    assert deleted.is_ok()
    assert isinstance(missing.error, NotFoundError)
    assert (await db_session.exec(select(TeamMember))).all() == []


@pytest.mark.asyncio
async def test_get_teams_visibility(service, seeded):
    await _create_team(service, seeded)
    await service.create_team(seeded.actor("globex_admin"), CreateTeamCommand(name="Globex"))

    as_manager = await service.get_teams(seeded.actor("acme_manager"))
    as_employee = await service.get_teams(seeded.actor("acme_employee"))

    assert [t.name for t in as_manager.value] == ["Dev Team"]
    assert isinstance(as_employee.error, AuthorizationError)


@pytest.mark.asyncio
async def test_other_tenant_cannot_read_team_members(service, seeded):
    team = await _create_team(service, seeded)

    result = await service.get_team_members(seeded.actor("globex_admin"), team.id)

    assert isinstance(result.error, TenantIsolationError)


@pytest.mark.asyncio
async def test_below_role_actor_cannot_tell_existing_teams_from_missing_ones(service, seeded):
    team = await _create_team(service, seeded)
    employee = seeded.actor("acme_employee")
    rename = UpdateTeamCommand(name="Renamed")

    existing = await service.update_team(employee, team.id, rename)
    missing = await service.update_team(employee, uuid4(), rename)
    foreign = await service.delete_team(seeded.actor("acme_manager"), uuid4())

    assert isinstance(existing.error, AuthorizationError)
    assert isinstance(missing.error, AuthorizationError)
    assert existing.error.message == missing.error.message
    assert isinstance(foreign.error, AuthorizationError)


@pytest.mark.asyncio
async def test_disabled_admin_is_rejected_before_team_lookup(service, seeded):
    team = await _create_team(service, seeded)
    disabled = await service.disable_user(seeded.actor("acme_root"), seeded.user("acme_admin2").id)
    assert disabled.is_ok(), disabled

    existing = await service.delete_team(seeded.actor("acme_admin2"), team.id)
    missing = await service.delete_team(seeded.actor("acme_admin2"), uuid4())

    assert isinstance(existing.error, InactiveActorError)
    assert isinstance(missing.error, InactiveActorError)
