"""
Permission Store

Fine-grained, resource-scoped grants and the templates used to issue them.
"""

import logging
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional
from uuid import UUID

from src.app.repositories.errors import DuplicateEntryError
from src.app.services.collaborators import ResourceOwnershipLookup
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import to_naive_utc
from src.domain.context import TenantContext
from src.domain.entities import PermissionTemplate, ResourceAction, ResourcePermission
from src.domain.errors import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.domain.policy import Capability, PolicyEngine
from src.domain.result import Result, Return

from .base import AdminComponent, Clock
from .dtos import (
    CreatePermissionTemplateCommand,
    GrantPermissionCommand,
    PermissionTemplateView,
    PermissionView,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTIONS = frozenset(action.value for action in ResourceAction)

# Returned by a single grant attempt that lost a race and should be re-run
_RETRY = object()


def _later(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    """Later of two expiries; None means never and wins."""
    if a is None or b is None:
        return None
    return max(a, b)


class PermissionStore(AdminComponent):
    """
    Business Rules:
    - Admins grant on any resource of their tenant; managers only on
      resources inside their scope (resolved by the ownership lookup)
    - One row per (user, resource_type, resource_id); a second grant unions
      its actions into the effective row, never shrinks it
    - A grant's expiry, when given, must lie in the future; expired grants
      are ignored at read time and never swept
    - Revocation deactivates the row and is idempotent
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ownership: ResourceOwnershipLookup,
        policy: Optional[PolicyEngine] = None,
        clock: Optional[Clock] = None,
        allowed_actions: Optional[Iterable[str]] = None,
        max_retries: int = 3,
    ):
        super().__init__(uow, policy, clock)
        self.ownership = ownership
        self.allowed_actions: FrozenSet[str] = (
            frozenset(allowed_actions) if allowed_actions else DEFAULT_ACTIONS
        )
        self.max_retries = max_retries

    def _validate_actions(self, actions: Iterable[str]) -> Optional[ValidationError]:
        actions = set(actions)
        if not actions:
            return ValidationError("At least one action is required", code="INVALID_ACTIONS")
        unknown = actions - self.allowed_actions
        if unknown:
            return ValidationError(
                f"Unknown actions: {', '.join(sorted(unknown))}", code="INVALID_ACTIONS"
            )
        return None

    async def grant(
        self, actor: TenantContext, command: GrantPermissionCommand
    ) -> Result[PermissionView]:
        """
        Create or merge a grant.

        Concurrent grants on the same row are resolved by re-reading and
        re-unioning, up to max_retries extra attempts.
        """
        for attempt in range(self.max_retries + 1):
            result = await self._grant_once(actor, command)
            if result is not _RETRY:
                return result
            logger.info(
                f"Grant on {command.resource_type}/{command.resource_id} raced, "
                f"attempt {attempt + 1}"
            )

        return Return.err(ConcurrentModificationError())

    async def _grant_once(self, actor: TenantContext, command: GrantPermissionCommand):
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("grant", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_resource_permissions)
            if admitted.is_err():
                return self._denied("grant", admitted)

            loaded = await self._load_user(actor, command.user_id)
            if loaded.is_err():
                return self._denied("grant", loaded)
            target = loaded.value

            owner_tenant = await self.ownership.resource_owner_tenant(
                command.resource_type, command.resource_id
            )
            if owner_tenant is None:
                return Return.err(
                    NotFoundError("Resource not found", code="RESOURCE_NOT_FOUND")
                )
            isolation = self.policy.check_tenant(actor, owner_tenant)
            if isolation.is_err():
                return self._denied("grant", isolation)

            in_scope = await self.ownership.manager_scope_includes(
                actor, command.resource_type, command.resource_id
            )
            decision = self.policy.can_manage_resource_permission(actor, owner_tenant, in_scope)
            if decision.is_err():
                return self._denied("grant", decision)

            invalid = self._validate_actions(command.actions)
            if invalid:
                return Return.err(invalid)

            now = self.clock()
            expires_at = to_naive_utc(command.expires_at) if command.expires_at else None
            if expires_at is not None and expires_at <= now:
                return Return.err(
                    ValidationError("Expiry must be in the future", code="INVALID_EXPIRY")
                )

            actions = sorted(set(command.actions))
            existing = await self.uow.resource_permissions.get_by_user_and_resource(
                target.id, command.resource_type, command.resource_id
            )

            values = None
            if existing is None:
                audit_action = "permission_granted"
            elif existing.is_effective(now):
                merged = sorted(set(existing.actions) | set(actions))
                merged_expiry = _later(existing.expires_at, expires_at)
                if merged == sorted(existing.actions) and merged_expiry == existing.expires_at:
                    return Return.ok(PermissionView.model_validate(existing))
                values = {"actions": merged, "expires_at": merged_expiry}
                audit_action = "permission_merged"
            else:
                # Nothing effective left to union with
                values = {
                    "actions": actions,
                    "expires_at": expires_at,
                    "active": True,
                    "granted_by": actor.user_id,
                    "granted_at": now,
                }
                audit_action = "permission_reactivated"

            # A demoted or disabled actor sends the attempt round again
            if not await self._unchanged(actor):
                return _RETRY

            if existing is None:
                try:
                    permission = await self.uow.resource_permissions.create(
                        ResourcePermission(
                            tenant_id=actor.tenant_id,
                            user_id=target.id,
                            resource_type=command.resource_type,
                            resource_id=command.resource_id,
                            actions=actions,
                            granted_by=actor.user_id,
                            granted_at=now,
                            expires_at=expires_at,
                        )
                    )
                except DuplicateEntryError:
                    return _RETRY
                view = PermissionView.model_validate(permission)
            else:
                if not await self.uow.resource_permissions.update_if_version(
                    existing.id, existing.version, values
                ):
                    return _RETRY
                view = PermissionView.model_validate(existing).model_copy(update=values)

            await self._audit(
                actor,
                audit_action,
                permission_id=view.id,
                user_id=target.id,
                resource_type=command.resource_type,
                resource_id=command.resource_id,
                actions=view.actions,
                expires_at=view.expires_at,
            )
            await self.uow.commit()

            logger.info(
                f"Permission {view.id} on {command.resource_type}/{command.resource_id} "
                f"now {view.actions} for user {target.id}"
            )
            return Return.ok(view)

    async def revoke(self, actor: TenantContext, permission_id: UUID) -> Result[PermissionView]:
        """
        Deactivate a grant. Idempotent on an already inactive grant.

        Args:
            actor: Admin, or a manager whose scope covers the resource
            permission_id: Grant to revoke

        Returns:
            Result with the grant as inactive, or Error (PERMISSION_NOT_FOUND, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("revoke", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_resource_permissions)
            if admitted.is_err():
                return self._denied("revoke", admitted)

            permission = await self.uow.resource_permissions.get_by_id(permission_id)
            if permission is None:
                return Return.err(
                    NotFoundError("Permission not found", code="PERMISSION_NOT_FOUND")
                )
            isolation = self.policy.check_tenant(actor, permission.tenant_id)
            if isolation.is_err():
                return self._denied("revoke", isolation)

            in_scope = await self.ownership.manager_scope_includes(
                actor, permission.resource_type, permission.resource_id
            )
            decision = self.policy.can_manage_resource_permission(
                actor, permission.tenant_id, in_scope
            )
            if decision.is_err():
                return self._denied("revoke", decision)

            view = PermissionView.model_validate(permission)
            if not permission.active:
                return Return.ok(view)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            if not await self.uow.resource_permissions.update_if_version(
                permission.id, permission.version, {"active": False}
            ):
                return Return.err(ConcurrentModificationError())

            await self._audit(
                actor,
                "permission_revoked",
                permission_id=permission.id,
                user_id=permission.user_id,
                resource_type=permission.resource_type,
                resource_id=permission.resource_id,
            )
            await self.uow.commit()

            logger.info(f"Permission {permission.id} revoked")
            return Return.ok(view.model_copy(update={"active": False}))

    async def list_effective(
        self, actor: TenantContext, user_id: UUID
    ) -> Result[List[PermissionView]]:
        """Grants of one user that are active and not expired at read time."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("list_effective", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.view_resource_permissions)
            if admitted.is_err():
                return self._denied("list_effective", admitted)

            loaded = await self._load_user(actor, user_id)
            if loaded.is_err():
                return self._denied("list_effective", loaded)

            decision = self.policy.can_view_resource_permissions(actor, loaded.value)
            if decision.is_err():
                return self._denied("list_effective", decision)

            now = self.clock()
            permissions = await self.uow.resource_permissions.list_by_user(
                actor.tenant_id, user_id
            )
            return Return.ok(
                [PermissionView.model_validate(p) for p in permissions if p.is_effective(now)]
            )

    async def create_template(
        self, actor: TenantContext, command: CreatePermissionTemplateCommand
    ) -> Result[PermissionTemplateView]:
        """
        Store a named action set for one resource type.

        Args:
            actor: Authenticated caller (admin)
            command: Name, description, resource type and actions

        Returns:
            Result with the template, or Error (TEMPLATE_EXISTS, INVALID_ACTIONS, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("create_template", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(
                actor, Capability.manage_permission_templates, actor.tenant_id
            )
            if decision.is_err():
                return self._denied("create_template", decision)

            name = command.name.strip()
            if not name or not command.resource_type.strip():
                return Return.err(
                    ValidationError(
                        "Template name and resource type are required", code="INVALID_TEMPLATE"
                    )
                )
            invalid = self._validate_actions(command.actions)
            if invalid:
                return Return.err(invalid)

            if await self.uow.permission_templates.get_by_tenant_and_name(actor.tenant_id, name):
                return Return.err(
                    ConflictError("A template with this name already exists", code="TEMPLATE_EXISTS")
                )

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            try:
                template = await self.uow.permission_templates.create(
                    PermissionTemplate(
                        tenant_id=actor.tenant_id,
                        name=name,
                        description=command.description,
                        resource_type=command.resource_type.strip(),
                        actions=sorted(set(command.actions)),
                        created_by=actor.user_id,
                    )
                )
            except DuplicateEntryError:
                return Return.err(
                    ConflictError("A template with this name already exists", code="TEMPLATE_EXISTS")
                )

            await self._audit(
                actor,
                "permission_template_created",
                template_id=template.id,
                name=name,
                resource_type=template.resource_type,
                actions=template.actions,
            )
            await self.uow.commit()

            return Return.ok(PermissionTemplateView.model_validate(template))

    async def get_templates(self, actor: TenantContext) -> Result[List[PermissionTemplateView]]:
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_templates", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(
                actor, Capability.view_permission_templates, actor.tenant_id
            )
            if decision.is_err():
                return self._denied("get_templates", decision)

            templates = await self.uow.permission_templates.list_by_tenant(actor.tenant_id)
            return Return.ok([PermissionTemplateView.model_validate(t) for t in templates])

    async def grant_from_template(
        self,
        actor: TenantContext,
        template_id: UUID,
        user_id: UUID,
        resource_id: str,
        expires_at: Optional[datetime] = None,
    ) -> Result[PermissionView]:
        """
        Grant a template's actions on one resource through the regular grant path.

        Args:
            actor: Admin, or a manager whose scope covers the resource
            template_id: Template supplying resource type and actions
            user_id: Grantee
            resource_id: Resource instance of the template's type
            expires_at: Optional future expiry

        Returns:
            Result with the effective grant, or Error (TEMPLATE_NOT_FOUND, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("grant_from_template", refreshed)

            admitted = self.policy.admit(refreshed.value, Capability.manage_resource_permissions)
            if admitted.is_err():
                return self._denied("grant_from_template", admitted)

            template = await self.uow.permission_templates.get_by_id(template_id)
            if template is None:
                return Return.err(
                    NotFoundError("Permission template not found", code="TEMPLATE_NOT_FOUND")
                )
            isolation = self.policy.check_tenant(refreshed.value, template.tenant_id)
            if isolation.is_err():
                return self._denied("grant_from_template", isolation)

            command = GrantPermissionCommand(
                user_id=user_id,
                resource_type=template.resource_type,
                resource_id=resource_id,
                actions=list(template.actions),
                expires_at=expires_at,
            )

        return await self.grant(actor, command)
