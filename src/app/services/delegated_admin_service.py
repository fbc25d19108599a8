"""
Delegated Administration Service

Single entry point for external callers. Every actor-bound method passes the
tenant isolation gate before delegating, and returns the component's Result
unchanged.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Union
from uuid import UUID

from src.app.services.collaborators import InvitationNotifier, ResourceOwnershipLookup
from src.app.services.unit_of_work import UnitOfWork
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole, TeamRole
from src.domain.errors import TenantIsolationError
from src.domain.policy import PolicyEngine
from src.domain.result import Result, Return

from .audit_log import AuditLog
from .base import Clock
from .dtos import (
    AuditEventsPage,
    CreatePermissionTemplateCommand,
    CreateTeamCommand,
    CreateUserCommand,
    Credentials,
    GrantPermissionCommand,
    InvitationDetails,
    InvitationView,
    InviteUserCommand,
    IssuedInvitation,
    PermissionTemplateView,
    PermissionView,
    TeamMemberView,
    TeamView,
    UpdateTeamCommand,
    UserView,
)
from .invitation_service import InvitationService
from .permission_store import PermissionStore
from .team_registry import TeamRegistry
from .user_directory import UserDirectory

logger = logging.getLogger(__name__)


class DelegatedAdminService:
    def __init__(
        self,
        uow: UnitOfWork,
        users: UserDirectory,
        teams: TeamRegistry,
        permissions: PermissionStore,
        invitations: InvitationService,
        audit: AuditLog,
    ):
        self.uow = uow
        self.users = users
        self.teams = teams
        self.permissions = permissions
        self.invitations = invitations
        self.audit = audit

    @classmethod
    def from_config(
        cls,
        uow: UnitOfWork,
        config,
        ownership: ResourceOwnershipLookup,
        notifier: InvitationNotifier,
        clock: Optional[Clock] = None,
    ) -> "DelegatedAdminService":
        """Wire every component onto one unit of work and one policy engine."""
        policy = PolicyEngine()
        return cls(
            uow=uow,
            users=UserDirectory(
                uow,
                policy,
                clock,
                bcrypt_rounds=config.BCRYPT_ROUNDS,
                min_password_length=config.MIN_PASSWORD_LENGTH,
            ),
            teams=TeamRegistry(uow, policy, clock),
            permissions=PermissionStore(
                uow,
                ownership,
                policy,
                clock,
                allowed_actions=config.RESOURCE_ACTIONS,
                max_retries=config.GRANT_MERGE_MAX_RETRIES,
            ),
            invitations=InvitationService(
                uow,
                notifier,
                policy,
                clock,
                ttl_days=config.INVITATION_TTL_DAYS,
                bcrypt_rounds=config.BCRYPT_ROUNDS,
                min_password_length=config.MIN_PASSWORD_LENGTH,
            ),
            audit=AuditLog(uow, policy, clock),
        )

    async def _isolation_gate(self, actor: TenantContext) -> Result[None]:
        async with self.uow:
            user = await self.uow.users.get_by_id(actor.user_id)
            if user is None or user.tenant_id != actor.tenant_id:
                return Return.err(TenantIsolationError("Actor does not belong to this tenant"))
        return Return.ok()

    async def _guarded(
        self, operation: str, actor: TenantContext, call: Callable[[], Awaitable[Result]]
    ) -> Result:
        gate = await self._isolation_gate(actor)
        if gate.is_err():
            logger.warning(f"{operation} rejected at isolation gate for user {actor.user_id}")
            return gate
        return await call()

    async def create_user(
        self, actor: TenantContext, command: CreateUserCommand
    ) -> Result[UserView]:
        return await self._guarded(
            "create_user", actor, lambda: self.users.create_user(actor, command)
        )

    async def update_user_role(
        self, actor: TenantContext, user_id: UUID, new_role: Union[GlobalRole, str]
    ) -> Result[UserView]:
        return await self._guarded(
            "update_user_role",
            actor,
            lambda: self.users.update_user_role(actor, user_id, new_role),
        )

    async def enable_user(self, actor: TenantContext, user_id: UUID) -> Result[UserView]:
        return await self._guarded(
            "enable_user", actor, lambda: self.users.set_user_active(actor, user_id, True)
        )

    async def disable_user(self, actor: TenantContext, user_id: UUID) -> Result[UserView]:
        return await self._guarded(
            "disable_user", actor, lambda: self.users.set_user_active(actor, user_id, False)
        )

    async def remove_user(self, actor: TenantContext, user_id: UUID) -> Result[UserView]:
        return await self._guarded(
            "remove_user", actor, lambda: self.users.remove_user(actor, user_id)
        )

    async def get_tenant_users(self, actor: TenantContext) -> Result[List[UserView]]:
        return await self._guarded(
            "get_tenant_users", actor, lambda: self.users.get_tenant_users(actor)
        )

    async def create_team(
        self, actor: TenantContext, command: CreateTeamCommand
    ) -> Result[TeamView]:
        return await self._guarded(
            "create_team", actor, lambda: self.teams.create_team(actor, command)
        )

    async def update_team(
        self, actor: TenantContext, team_id: UUID, command: UpdateTeamCommand
    ) -> Result[TeamView]:
        return await self._guarded(
            "update_team", actor, lambda: self.teams.update_team(actor, team_id, command)
        )

    async def delete_team(self, actor: TenantContext, team_id: UUID) -> Result[TeamView]:
        return await self._guarded(
            "delete_team", actor, lambda: self.teams.delete_team(actor, team_id)
        )

    async def add_user_to_team(
        self,
        actor: TenantContext,
        team_id: UUID,
        user_id: UUID,
        team_role: TeamRole = TeamRole.member,
    ) -> Result[TeamMemberView]:
        return await self._guarded(
            "add_user_to_team",
            actor,
            lambda: self.teams.add_user_to_team(actor, team_id, user_id, team_role),
        )

    async def remove_user_from_team(
        self, actor: TenantContext, member_id: UUID
    ) -> Result[TeamMemberView]:
        return await self._guarded(
            "remove_user_from_team",
            actor,
            lambda: self.teams.remove_user_from_team(actor, member_id),
        )

    async def assign_team_admin(
        self, actor: TenantContext, team_id: UUID, user_id: Optional[UUID]
    ) -> Result[TeamView]:
        return await self._guarded(
            "assign_team_admin",
            actor,
            lambda: self.teams.assign_team_admin(actor, team_id, user_id),
        )

    async def get_teams(self, actor: TenantContext) -> Result[List[TeamView]]:
        return await self._guarded("get_teams", actor, lambda: self.teams.get_teams(actor))

    async def get_team_members(
        self, actor: TenantContext, team_id: UUID
    ) -> Result[List[TeamMemberView]]:
        return await self._guarded(
            "get_team_members", actor, lambda: self.teams.get_team_members(actor, team_id)
        )

    async def grant_resource_permission(
        self, actor: TenantContext, command: GrantPermissionCommand
    ) -> Result[PermissionView]:
        return await self._guarded(
            "grant_resource_permission", actor, lambda: self.permissions.grant(actor, command)
        )

    async def revoke_resource_permission(
        self, actor: TenantContext, permission_id: UUID
    ) -> Result[PermissionView]:
        return await self._guarded(
            "revoke_resource_permission",
            actor,
            lambda: self.permissions.revoke(actor, permission_id),
        )

    async def get_user_resource_permissions(
        self, actor: TenantContext, user_id: UUID
    ) -> Result[List[PermissionView]]:
        return await self._guarded(
            "get_user_resource_permissions",
            actor,
            lambda: self.permissions.list_effective(actor, user_id),
        )

    async def create_permission_template(
        self, actor: TenantContext, command: CreatePermissionTemplateCommand
    ) -> Result[PermissionTemplateView]:
        return await self._guarded(
            "create_permission_template",
            actor,
            lambda: self.permissions.create_template(actor, command),
        )

    async def get_permission_templates(
        self, actor: TenantContext
    ) -> Result[List[PermissionTemplateView]]:
        return await self._guarded(
            "get_permission_templates", actor, lambda: self.permissions.get_templates(actor)
        )

    async def grant_from_template(
        self,
        actor: TenantContext,
        template_id: UUID,
        user_id: UUID,
        resource_id: str,
        expires_at: Optional[datetime] = None,
    ) -> Result[PermissionView]:
        return await self._guarded(
            "grant_from_template",
            actor,
            lambda: self.permissions.grant_from_template(
                actor, template_id, user_id, resource_id, expires_at
            ),
        )

    async def invite_user(
        self, actor: TenantContext, command: InviteUserCommand
    ) -> Result[IssuedInvitation]:
        return await self._guarded(
            "invite_user", actor, lambda: self.invitations.invite_user(actor, command)
        )

    async def revoke_invitation(
        self, actor: TenantContext, invitation_id: UUID
    ) -> Result[InvitationView]:
        return await self._guarded(
            "revoke_invitation",
            actor,
            lambda: self.invitations.revoke_invitation(actor, invitation_id),
        )

    async def resend_invitation(
        self, actor: TenantContext, invitation_id: UUID
    ) -> Result[IssuedInvitation]:
        return await self._guarded(
            "resend_invitation",
            actor,
            lambda: self.invitations.resend_invitation(actor, invitation_id),
        )

    async def get_invitations(self, actor: TenantContext) -> Result[List[InvitationView]]:
        return await self._guarded(
            "get_invitations", actor, lambda: self.invitations.get_invitations(actor)
        )

    # Token holders are not authenticated actors; the token is the credential
    async def verify_token(self, token: str) -> Result[InvitationDetails]:
        return await self.invitations.verify_token(token)

    async def accept_invitation(self, token: str, credentials: Credentials) -> Result[UserView]:
        return await self.invitations.accept_invitation(token, credentials)

    async def get_audit_events(
        self, actor: TenantContext, limit: int = 50, cursor: Optional[str] = None
    ) -> Result[AuditEventsPage]:
        return await self._guarded(
            "get_audit_events", actor, lambda: self.audit.get_audit_events(actor, limit, cursor)
        )
