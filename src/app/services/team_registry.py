"""
Team Registry

Team lifecycle, membership and team-admin assignment.
"""

import logging
from typing import List, Optional
from uuid import UUID

from src.app.repositories.errors import DuplicateEntryError
from src.domain.context import TenantContext
from src.domain.entities import Team, TeamMember, TeamRole, User
from src.domain.errors import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.domain.policy import Capability
from src.domain.result import Error, Result, Return

from .base import AdminComponent
from .dtos import CreateTeamCommand, TeamMemberView, TeamView, UpdateTeamCommand

logger = logging.getLogger(__name__)


def _team_name_taken() -> Error:
    return ConflictError("A team with this name already exists", code="TEAM_NAME_TAKEN")


def _clean_name(name: Optional[str]) -> Optional[str]:
    return name.strip() if name is not None else None


class TeamRegistry(AdminComponent):
    """
    Business Rules:
    - Admins create, rename and delete teams; names are unique per tenant
    - Members are added/removed by admins or by the team's own team admin
    - The team admin must be an active manager of the same tenant
    - Team role (member/lead) carries no global or resource privilege
    """

    async def create_team(
        self, actor: TenantContext, command: CreateTeamCommand
    ) -> Result[TeamView]:
        """
        Create a team, optionally with its team admin.

        Args:
            actor: Authenticated caller
            command: Name, description and optional team_admin_id

        Returns:
            Result with the new team, or Error (TEAM_NAME_TAKEN,
            TEAM_ADMIN_NOT_MANAGER, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("create_team", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(actor, Capability.manage_teams, actor.tenant_id)
            if decision.is_err():
                return self._denied("create_team", decision)

            name = _clean_name(command.name)
            if not name:
                return Return.err(ValidationError("Team name is required", code="INVALID_TEAM_NAME"))

            team = Team(
                tenant_id=actor.tenant_id,
                name=name,
                description=command.description,
                created_by=actor.user_id,
            )

            pinned: List[User] = []
            if command.team_admin_id is not None:
                loaded = await self._load_user(actor, command.team_admin_id)
                if loaded.is_err():
                    return self._denied("create_team", loaded)
                decision = self.policy.can_assign_team_admin(actor, team, loaded.value)
                if decision.is_err():
                    return self._denied("create_team", decision)
                team.team_admin_id = loaded.value.id
                pinned.append(loaded.value)

            if await self.uow.teams.get_by_tenant_and_name(actor.tenant_id, name):
                return Return.err(_team_name_taken())

            # The candidate's role must not change before the team lands
            if not await self._unchanged(actor, *pinned):
                return Return.err(ConcurrentModificationError())

            try:
                team = await self.uow.teams.create(team)
            except DuplicateEntryError:
                return Return.err(_team_name_taken())

            await self._audit(
                actor, "team_created", team_id=team.id, name=name, team_admin_id=team.team_admin_id
            )
            await self.uow.commit()

            logger.info(f"Team {team.id} created in tenant {actor.tenant_id}")
            return Return.ok(TeamView.model_validate(team))

    async def update_team(
        self, actor: TenantContext, team_id: UUID, command: UpdateTeamCommand
    ) -> Result[TeamView]:
        """Rename a team or change its description. Unset fields stay as they are."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("update_team", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_teams)
            if admitted.is_err():
                return self._denied("update_team", admitted)

            loaded = await self._load_team(actor, team_id)
            if loaded.is_err():
                return self._denied("update_team", loaded)
            team = loaded.value

            decision = self.policy.decide(actor, Capability.manage_teams, team.tenant_id)
            if decision.is_err():
                return self._denied("update_team", decision)

            values = {}
            name = _clean_name(command.name)
            if command.name is not None:
                if not name:
                    return Return.err(
                        ValidationError("Team name is required", code="INVALID_TEAM_NAME")
                    )
                if name != team.name:
                    if await self.uow.teams.get_by_tenant_and_name(actor.tenant_id, name):
                        return Return.err(_team_name_taken())
                    values["name"] = name
            if command.description is not None:
                values["description"] = command.description

            view = TeamView.model_validate(team)
            if not values:
                return Return.ok(view)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            try:
                updated = await self.uow.teams.update_if_version(team.id, team.version, values)
            except DuplicateEntryError:
                return Return.err(_team_name_taken())
            if not updated:
                return Return.err(ConcurrentModificationError())

            await self._audit(actor, "team_updated", team_id=team.id, **values)
            await self.uow.commit()

            return Return.ok(view.model_copy(update=values))

    async def delete_team(self, actor: TenantContext, team_id: UUID) -> Result[TeamView]:
        """
        Delete a team together with its memberships.

        Args:
            actor: Authenticated caller (admin)
            team_id: Team to delete

        Returns:
            Result with the deleted team as it was, or Error
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("delete_team", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_teams)
            if admitted.is_err():
                return self._denied("delete_team", admitted)

            loaded = await self._load_team(actor, team_id)
            if loaded.is_err():
                return self._denied("delete_team", loaded)
            team = loaded.value

            decision = self.policy.decide(actor, Capability.manage_teams, team.tenant_id)
            if decision.is_err():
                return self._denied("delete_team", decision)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            view = TeamView.model_validate(team)
            removed = await self.uow.team_members.delete_by_team(team.id)
            await self.uow.teams.delete(team)

            await self._audit(
                actor, "team_deleted", team_id=view.id, name=view.name, members_removed=removed
            )
            await self.uow.commit()

            logger.info(f"Team {view.id} deleted from tenant {actor.tenant_id}")
            return Return.ok(view)

    async def add_user_to_team(
        self,
        actor: TenantContext,
        team_id: UUID,
        user_id: UUID,
        team_role: TeamRole = TeamRole.member,
    ) -> Result[TeamMemberView]:
        """
        Add a user of the tenant to a team.

        Args:
            actor: Admin, or the team's own team admin
            team_id: Target team
            user_id: User joining the team; must be active
            team_role: member or lead

        Returns:
            Result with the membership, or Error (ALREADY_TEAM_MEMBER, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("add_user_to_team", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_team_members)
            if admitted.is_err():
                return self._denied("add_user_to_team", admitted)

            loaded_team = await self._load_team(actor, team_id)
            if loaded_team.is_err():
                return self._denied("add_user_to_team", loaded_team)
            team = loaded_team.value

            decision = self.policy.can_manage_team_members(actor, team)
            if decision.is_err():
                return self._denied("add_user_to_team", decision)

            loaded_user = await self._load_user(actor, user_id)
            if loaded_user.is_err():
                return self._denied("add_user_to_team", loaded_user)
            user = loaded_user.value

            if not user.active:
                return Return.err(
                    ValidationError("Disabled users cannot join teams", code="USER_INACTIVE")
                )

            if await self.uow.team_members.get_by_team_and_user(team.id, user.id):
                return Return.err(
                    ConflictError("User is already a member of this team", code="ALREADY_TEAM_MEMBER")
                )

            if not await self._unchanged(actor, user):
                return Return.err(ConcurrentModificationError())

            try:
                member = await self.uow.team_members.create(
                    TeamMember(
                        team_id=team.id,
                        user_id=user.id,
                        team_role=TeamRole(team_role),
                        added_by=actor.user_id,
                    )
                )
            except DuplicateEntryError:
                return Return.err(
                    ConflictError("User is already a member of this team", code="ALREADY_TEAM_MEMBER")
                )

            await self._audit(
                actor,
                "team_member_added",
                team_id=team.id,
                user_id=user.id,
                team_role=member.team_role,
            )
            await self.uow.commit()

            return Return.ok(_member_view(member, user))

    async def remove_user_from_team(
        self, actor: TenantContext, member_id: UUID
    ) -> Result[TeamMemberView]:
        """Remove a membership; removing the team admin also clears the team's admin seat."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("remove_user_from_team", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_team_members)
            if admitted.is_err():
                return self._denied("remove_user_from_team", admitted)

            member = await self.uow.team_members.get_by_id(member_id)
            if member is None:
                return Return.err(
                    NotFoundError("Team membership not found", code="TEAM_MEMBER_NOT_FOUND")
                )

            loaded = await self._load_team(actor, member.team_id)
            if loaded.is_err():
                return self._denied("remove_user_from_team", loaded)
            team = loaded.value

            decision = self.policy.can_manage_team_members(actor, team)
            if decision.is_err():
                return self._denied("remove_user_from_team", decision)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            user = await self.uow.users.get_by_id(member.user_id)
            view = _member_view(member, user)
            await self.uow.team_members.delete(member)

            cleared_admin = team.team_admin_id == member.user_id
            if cleared_admin:
                if not await self.uow.teams.update_if_version(
                    team.id, team.version, {"team_admin_id": None}
                ):
                    return Return.err(ConcurrentModificationError())

            await self._audit(
                actor,
                "team_member_removed",
                team_id=team.id,
                user_id=member.user_id,
                cleared_team_admin=cleared_admin,
            )
            await self.uow.commit()

            return Return.ok(view)

    async def assign_team_admin(
        self, actor: TenantContext, team_id: UUID, user_id: Optional[UUID]
    ) -> Result[TeamView]:
        """
        Assign the team admin, or clear it. Idempotent.

        The candidate's user row is pinned at the version its role was read
        at, so a concurrent demotion either lands first (and this call
        fails with ConcurrentModificationError) or waits and then clears
        the seat itself.

        Args:
            actor: Authenticated caller (admin)
            team_id: Target team
            user_id: Active manager of the tenant, or None to clear

        Returns:
            Result with the updated team, or Error
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("assign_team_admin", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.assign_team_admin)
            if admitted.is_err():
                return self._denied("assign_team_admin", admitted)

            loaded = await self._load_team(actor, team_id)
            if loaded.is_err():
                return self._denied("assign_team_admin", loaded)
            team = loaded.value

            candidate: Optional[User] = None
            if user_id is not None:
                loaded_user = await self._load_user(actor, user_id)
                if loaded_user.is_err():
                    return self._denied("assign_team_admin", loaded_user)
                candidate = loaded_user.value

            decision = self.policy.can_assign_team_admin(actor, team, candidate)
            if decision.is_err():
                return self._denied("assign_team_admin", decision)

            view = TeamView.model_validate(team)
            if team.team_admin_id == user_id:
                return Return.ok(view)

            pinned = [candidate] if candidate is not None else []
            if not await self._unchanged(actor, *pinned):
                return Return.err(ConcurrentModificationError())

            if not await self.uow.teams.update_if_version(
                team.id, team.version, {"team_admin_id": user_id}
            ):
                return Return.err(ConcurrentModificationError())

            await self._audit(
                actor,
                "team_admin_assigned",
                team_id=team.id,
                previous_admin_id=team.team_admin_id,
                team_admin_id=user_id,
            )
            await self.uow.commit()

            logger.info(f"Team {team.id} admin set to {user_id}")
            return Return.ok(view.model_copy(update={"team_admin_id": user_id}))

    async def get_teams(self, actor: TenantContext) -> Result[List[TeamView]]:
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_teams", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(actor, Capability.view_teams, actor.tenant_id)
            if decision.is_err():
                return self._denied("get_teams", decision)

            teams = await self.uow.teams.list_by_tenant(actor.tenant_id)
            return Return.ok([TeamView.model_validate(team) for team in teams])

    async def get_team_members(
        self, actor: TenantContext, team_id: UUID
    ) -> Result[List[TeamMemberView]]:
        """Members of one team, joined with each user's name, email and global role."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_team_members", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.view_team_members)
            if admitted.is_err():
                return self._denied("get_team_members", admitted)

            loaded = await self._load_team(actor, team_id)
            if loaded.is_err():
                return self._denied("get_team_members", loaded)

            decision = self.policy.can_view_team_members(actor, loaded.value)
            if decision.is_err():
                return self._denied("get_team_members", decision)

            rows = await self.uow.team_members.list_by_team_with_users(team_id)
            return Return.ok([_member_view(member, user) for member, user in rows])


def _member_view(member: TeamMember, user: User) -> TeamMemberView:
    return TeamMemberView(
        id=member.id,
        team_id=member.team_id,
        user_id=member.user_id,
        team_role=member.team_role,
        joined_at=member.joined_at,
        full_name=user.full_name,
        email=user.email,
        global_role=user.global_role,
    )
