"""
Policy Engine

Pure decision functions. Given an actor and a target, return an empty ok
Result (allow) or an error Result naming the denial. Never touches storage.

Checks always run in this order:
1. tenant match          -> TenantIsolationError
2. actor active          -> InactiveActorError
3. minimum role          -> AuthorizationError
4. capability predicate  -> ValidationError (or the predicate's own error)
"""

from enum import Enum
from typing import Callable, Dict, Optional
from uuid import UUID

from .context import TenantContext
from .entities import GlobalRole, Team, User
from .errors import (
    AuthorizationError,
    InactiveActorError,
    TenantIsolationError,
    ValidationError,
)
from .result import Error, Result, Return
from .roles import ROLE_HIERARCHY, RoleHierarchy

Decision = Result[None]
Predicate = Callable[[], Optional[Error]]


class Capability(str, Enum):
    invite_user = "invite_user"
    manage_invitations = "manage_invitations"
    create_user = "create_user"
    update_user_role = "update_user_role"
    toggle_user = "toggle_user"
    remove_user = "remove_user"
    view_users = "view_users"
    manage_teams = "manage_teams"
    manage_team_members = "manage_team_members"
    assign_team_admin = "assign_team_admin"
    view_teams = "view_teams"
    view_team_members = "view_team_members"
    manage_resource_permissions = "manage_resource_permissions"
    view_resource_permissions = "view_resource_permissions"
    manage_permission_templates = "manage_permission_templates"
    view_permission_templates = "view_permission_templates"
    view_audit_events = "view_audit_events"


MINIMUM_ROLE: Dict[Capability, GlobalRole] = {
    Capability.invite_user: GlobalRole.admin,
    Capability.manage_invitations: GlobalRole.admin,
    Capability.create_user: GlobalRole.admin,
    Capability.update_user_role: GlobalRole.admin,
    Capability.toggle_user: GlobalRole.admin,
    Capability.remove_user: GlobalRole.admin,
    Capability.view_users: GlobalRole.admin,
    Capability.manage_teams: GlobalRole.admin,
    # team admins qualify through delegated authority
    Capability.manage_team_members: GlobalRole.admin,
    Capability.assign_team_admin: GlobalRole.admin,
    Capability.view_teams: GlobalRole.manager,
    Capability.view_team_members: GlobalRole.admin,
    # managers additionally need scope over the resource
    Capability.manage_resource_permissions: GlobalRole.manager,
    Capability.view_resource_permissions: GlobalRole.manager,
    Capability.manage_permission_templates: GlobalRole.admin,
    Capability.view_permission_templates: GlobalRole.manager,
    Capability.view_audit_events: GlobalRole.admin,
}


# Lowest role that can hold a capability through delegated authority
DELEGATION_FLOOR: Dict[Capability, GlobalRole] = {
    Capability.manage_team_members: GlobalRole.manager,
    Capability.view_team_members: GlobalRole.manager,
    Capability.view_resource_permissions: GlobalRole.employee,
}


class PolicyEngine:
    def __init__(self, hierarchy: RoleHierarchy = ROLE_HIERARCHY):
        self.hierarchy = hierarchy

    def check_tenant(self, actor: TenantContext, target_tenant_id: UUID) -> Decision:
        if actor.tenant_id != target_tenant_id:
            return Return.err(TenantIsolationError())
        return Return.ok()

    def admit(self, actor: TenantContext, capability: Capability) -> Decision:
        """
        Active and minimum-role checks on the actor alone, run before any
        target is loaded, so an actor who could not act either way learns
        nothing about which targets exist. Delegated capabilities are
        admitted from their delegation floor; the full decision follows once
        the target is known.
        """
        minimum = DELEGATION_FLOOR.get(capability, MINIMUM_ROLE[capability])
        if not actor.active:
            return Return.err(InactiveActorError())
        if not self.hierarchy.at_least(actor.global_role, minimum):
            return Return.err(
                AuthorizationError(
                    f"{capability.value} requires the {minimum.value} role or higher"
                )
            )
        return Return.ok()

    def decide(
        self,
        actor: TenantContext,
        capability: Capability,
        target_tenant_id: UUID,
        predicate: Optional[Predicate] = None,
        delegated: bool = False,
    ) -> Decision:
        """
        Generic decision.

        delegated=True lets an actor below the minimum role through step 3
        when they hold a narrower authority over the target (team admin of
        the team, the user reading their own grants).
        """
        isolation = self.check_tenant(actor, target_tenant_id)
        if isolation.is_err():
            return isolation

        if not actor.active:
            return Return.err(InactiveActorError())

        minimum = MINIMUM_ROLE[capability]
        if not delegated and not self.hierarchy.at_least(actor.global_role, minimum):
            return Return.err(
                AuthorizationError(
                    f"{capability.value} requires the {minimum.value} role or higher"
                )
            )

        if predicate is not None:
            error = predicate()
            if error is not None:
                return Return.err(error)

        return Return.ok()

    def _assignable(self, actor: TenantContext, role: GlobalRole) -> Optional[Error]:
        if role == GlobalRole.superadmin:
            return ValidationError(
                "superadmin cannot be assigned", code="ROLE_ESCALATION"
            )
        if not self.hierarchy.can_assign(actor.global_role, role):
            return ValidationError(
                "Cannot assign a role equal to or higher than your own",
                code="ROLE_ESCALATION",
            )
        return None

    def can_invite_user(
        self, actor: TenantContext, tenant_id: UUID, proposed_role: GlobalRole
    ) -> Decision:
        return self.decide(
            actor,
            Capability.invite_user,
            tenant_id,
            lambda: self._assignable(actor, proposed_role),
        )

    def can_create_user(
        self, actor: TenantContext, tenant_id: UUID, role: GlobalRole
    ) -> Decision:
        return self.decide(
            actor, Capability.create_user, tenant_id, lambda: self._assignable(actor, role)
        )

    def can_update_user_role(
        self, actor: TenantContext, target: User, new_role: GlobalRole
    ) -> Decision:
        isolation = self.check_tenant(actor, target.tenant_id)
        if isolation.is_err():
            return isolation
        if not actor.active:
            return Return.err(InactiveActorError())
        # superadmin is never assignable, whoever asks
        if new_role == GlobalRole.superadmin:
            return Return.err(self._assignable(actor, new_role))

        def predicate() -> Optional[Error]:
            if target.id == actor.user_id:
                return ValidationError("You cannot change your own role", code="SELF_ROLE_CHANGE")
            if not self.hierarchy.outranks(actor.global_role, target.global_role):
                return ValidationError(
                    "Cannot change the role of a user at or above your own rank",
                    code="ROLE_ESCALATION",
                )
            return self._assignable(actor, new_role)

        return self.decide(actor, Capability.update_user_role, target.tenant_id, predicate)

    def can_toggle_user(
        self, actor: TenantContext, target: User, capability: Capability = Capability.toggle_user
    ) -> Decision:
        def predicate() -> Optional[Error]:
            if target.id == actor.user_id:
                return ValidationError(
                    "You cannot disable or remove your own account", code="SELF_TARGET"
                )
            if self.hierarchy.outranks(target.global_role, actor.global_role):
                return ValidationError(
                    "Cannot manage a user above your own rank", code="ROLE_ESCALATION"
                )
            return None

        return self.decide(actor, capability, target.tenant_id, predicate)

    def can_manage_team_members(self, actor: TenantContext, team: Team) -> Decision:
        return self.decide(
            actor,
            Capability.manage_team_members,
            team.tenant_id,
            delegated=self.is_team_admin(actor, team),
        )

    def can_view_team_members(self, actor: TenantContext, team: Team) -> Decision:
        return self.decide(
            actor,
            Capability.view_team_members,
            team.tenant_id,
            delegated=self.is_team_admin(actor, team),
        )

    def can_assign_team_admin(
        self, actor: TenantContext, team: Team, candidate: Optional[User]
    ) -> Decision:
        if candidate is not None:
            isolation = self.check_tenant(actor, candidate.tenant_id)
            if isolation.is_err():
                return isolation

        def predicate() -> Optional[Error]:
            if candidate is None:
                return None
            if candidate.global_role != GlobalRole.manager:
                return ValidationError(
                    "team admin must hold manager role", code="TEAM_ADMIN_NOT_MANAGER"
                )
            if not candidate.active:
                return ValidationError(
                    "team admin must be an active user", code="TEAM_ADMIN_INACTIVE"
                )
            return None

        return self.decide(actor, Capability.assign_team_admin, team.tenant_id, predicate)

    def can_manage_resource_permission(
        self, actor: TenantContext, tenant_id: UUID, manager_in_scope: bool
    ) -> Decision:
        def predicate() -> Optional[Error]:
            if self.hierarchy.at_least(actor.global_role, GlobalRole.admin):
                return None
            if not manager_in_scope:
                return AuthorizationError(
                    "Managers can only manage permissions on resources in their scope",
                    code="OUT_OF_SCOPE",
                )
            return None

        return self.decide(
            actor, Capability.manage_resource_permissions, tenant_id, predicate
        )

    def can_view_resource_permissions(
        self, actor: TenantContext, target: User
    ) -> Decision:
        return self.decide(
            actor,
            Capability.view_resource_permissions,
            target.tenant_id,
            delegated=target.id == actor.user_id,
        )

    def is_team_admin(self, actor: TenantContext, team: Team) -> bool:
        return (
            team.team_admin_id is not None
            and team.team_admin_id == actor.user_id
            and actor.global_role == GlobalRole.manager
        )
