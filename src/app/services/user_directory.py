"""
User Directory

User lifecycle inside a tenant: direct creation, role changes,
enable/disable and soft removal.
"""

import logging
from typing import List, Optional, Union
from uuid import UUID

from src.app.repositories.errors import DuplicateEntryError
from src.app.services.unit_of_work import UnitOfWork
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole, User
from src.domain.errors import (
    ConcurrentModificationError,
    ConflictError,
    ValidationError,
)
from src.domain.policy import Capability, PolicyEngine
from src.domain.result import Result, Return

from .base import AdminComponent, Clock, hash_password, normalize_email
from .dtos import CreateUserCommand, UserView

logger = logging.getLogger(__name__)


class UserDirectory(AdminComponent):
    """
    Business Rules:
    - Only admins (and above) manage users
    - Roles are only assigned strictly below the actor's own rank;
      superadmin is never assignable
    - Nobody changes their own role or disables/removes themselves
    - Demoting a manager clears them as team admin everywhere
    - Users are never deleted, only deactivated
    """

    def __init__(
        self,
        uow: UnitOfWork,
        policy: Optional[PolicyEngine] = None,
        clock: Optional[Clock] = None,
        bcrypt_rounds: int = 12,
        min_password_length: int = 8,
    ):
        super().__init__(uow, policy, clock)
        self.bcrypt_rounds = bcrypt_rounds
        self.min_password_length = min_password_length

    async def create_user(
        self, actor: TenantContext, command: CreateUserCommand
    ) -> Result[UserView]:
        """
        Create an active user directly, without an invitation.

        Args:
            actor: Authenticated caller (admin or above)
            command: Email, full name, role strictly below the actor's, password

        Returns:
            Result with the new user, or Error (USER_EXISTS, ROLE_ESCALATION, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("create_user", refreshed)
            actor = refreshed.value

            decision = self.policy.can_create_user(actor, actor.tenant_id, command.global_role)
            if decision.is_err():
                return self._denied("create_user", decision)

            if len(command.password) < self.min_password_length:
                return Return.err(
                    ValidationError(
                        f"Password must be at least {self.min_password_length} characters long",
                        code="INVALID_PASSWORD",
                    )
                )

            email = normalize_email(command.email)
            if await self.uow.users.get_by_tenant_and_email(actor.tenant_id, email):
                return Return.err(
                    ConflictError("A user with this email already exists", code="USER_EXISTS")
                )

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            try:
                user = await self.uow.users.create(
                    User(
                        tenant_id=actor.tenant_id,
                        email=email,
                        full_name=command.full_name.strip(),
                        password_hash=hash_password(command.password, self.bcrypt_rounds),
                        global_role=command.global_role,
                    )
                )
            except DuplicateEntryError:
                return Return.err(
                    ConflictError("A user with this email already exists", code="USER_EXISTS")
                )

            await self._audit(
                actor, "user_created", user_id=user.id, role=user.global_role
            )
            await self.uow.commit()

            logger.info(f"User {user.id} created in tenant {actor.tenant_id}")
            return Return.ok(UserView.model_validate(user))

    async def update_user_role(
        self, actor: TenantContext, user_id: UUID, new_role: Union[GlobalRole, str]
    ) -> Result[UserView]:
        """
        Change a user's global role.

        Demoting a manager clears them as team admin of every team they
        administer, in the same transaction.

        Args:
            actor: Authenticated caller (admin or above)
            user_id: User whose role changes; strictly below the actor
            new_role: Role to assign; never superadmin

        Returns:
            Result with the updated user, or Error
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("update_user_role", refreshed)
            actor = refreshed.value

            try:
                role = GlobalRole(new_role)
            except ValueError:
                return Return.err(
                    ValidationError(f"Invalid role: {new_role}", code="INVALID_ROLE")
                )

            # superadmin is rejected as a validation error for every actor,
            # so only other roles go through the early role gate
            if role != GlobalRole.superadmin:
                admitted = self.policy.admit(actor, Capability.update_user_role)
                if admitted.is_err():
                    return self._denied("update_user_role", admitted)

            loaded = await self._load_user(actor, user_id)
            if loaded.is_err():
                return self._denied("update_user_role", loaded)
            target = loaded.value

            decision = self.policy.can_update_user_role(actor, target, role)
            if decision.is_err():
                return self._denied("update_user_role", decision)

            old_role = target.global_role
            view = UserView.model_validate(target)
            if old_role == role:
                return Return.ok(view)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            updated = await self.uow.users.update_if_version(
                target.id, target.version, {"global_role": role}
            )
            if not updated:
                return Return.err(ConcurrentModificationError())

            cleared = []
            if old_role == GlobalRole.manager:
                for team in await self.uow.teams.list_by_admin(target.id):
                    if not await self.uow.teams.update_if_version(
                        team.id, team.version, {"team_admin_id": None}
                    ):
                        return Return.err(ConcurrentModificationError())
                    cleared.append(team.id)

            await self._audit(
                actor,
                "role_changed",
                target_user_id=target.id,
                old_role=old_role,
                new_role=role,
                cleared_team_admin_of=cleared,
            )
            await self.uow.commit()

            logger.info(f"User {target.id} role changed {old_role.value} -> {role.value}")
            return Return.ok(view.model_copy(update={"global_role": role}))

    async def set_user_active(
        self, actor: TenantContext, user_id: UUID, active: bool
    ) -> Result[UserView]:
        """
        Enable or disable a user. Idempotent; nobody toggles themselves or
        anyone above their own rank.

        Args:
            actor: Authenticated caller (admin or above)
            user_id: Target user
            active: New state

        Returns:
            Result with the user in its new state, or Error
        """
        operation = "enable_user" if active else "disable_user"
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied(operation, refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.toggle_user)
            if admitted.is_err():
                return self._denied(operation, admitted)

            loaded = await self._load_user(actor, user_id)
            if loaded.is_err():
                return self._denied(operation, loaded)
            target = loaded.value

            decision = self.policy.can_toggle_user(actor, target)
            if decision.is_err():
                return self._denied(operation, decision)

            view = UserView.model_validate(target)
            if target.active == active:
                return Return.ok(view)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            if not await self.uow.users.update_if_version(
                target.id, target.version, {"active": active}
            ):
                return Return.err(ConcurrentModificationError())

            await self._audit(
                actor, "user_enabled" if active else "user_disabled", target_user_id=target.id
            )
            await self.uow.commit()

            logger.info(f"User {target.id} {'enabled' if active else 'disabled'}")
            return Return.ok(view.model_copy(update={"active": active}))

    async def remove_user(self, actor: TenantContext, user_id: UUID) -> Result[UserView]:
        """Soft removal: deactivate, drop team memberships, team-admin seats and grants."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("remove_user", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.remove_user)
            if admitted.is_err():
                return self._denied("remove_user", admitted)

            loaded = await self._load_user(actor, user_id)
            if loaded.is_err():
                return self._denied("remove_user", loaded)
            target = loaded.value

            decision = self.policy.can_toggle_user(actor, target, Capability.remove_user)
            if decision.is_err():
                return self._denied("remove_user", decision)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            if not await self.uow.users.update_if_version(
                target.id, target.version, {"active": False}
            ):
                return Return.err(ConcurrentModificationError())

            memberships = await self.uow.team_members.delete_by_user(target.id)
            for team in await self.uow.teams.list_by_admin(target.id):
                if not await self.uow.teams.update_if_version(
                    team.id, team.version, {"team_admin_id": None}
                ):
                    return Return.err(ConcurrentModificationError())
            grants = await self.uow.resource_permissions.deactivate_by_user(
                actor.tenant_id, target.id
            )

            await self._audit(
                actor,
                "user_removed",
                target_user_id=target.id,
                memberships_removed=memberships,
                grants_revoked=grants,
            )
            await self.uow.commit()

            logger.info(f"User {target.id} removed from tenant {actor.tenant_id}")
            return Return.ok(UserView.model_validate(target).model_copy(update={"active": False}))

    async def get_tenant_users(self, actor: TenantContext) -> Result[List[UserView]]:
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_tenant_users", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(actor, Capability.view_users, actor.tenant_id)
            if decision.is_err():
                return self._denied("get_tenant_users", decision)

            users = await self.uow.users.list_by_tenant(actor.tenant_id)
            return Return.ok([UserView.model_validate(user) for user in users])
