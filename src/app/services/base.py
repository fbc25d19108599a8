import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional
from uuid import UUID

import bcrypt

from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.context import TenantContext
from src.domain.entities import AuditEvent, Team, User
from src.domain.errors import NotFoundError, TenantIsolationError
from src.domain.policy import PolicyEngine
from src.domain.result import Result, Return

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode(
        "utf-8"
    )


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AdminComponent:
    """
    Shared plumbing for the authorization components.

    Every public method opens the unit of work, re-reads the actor inside
    that transaction and only then asks the policy engine, so decisions are
    never made on a stale role or tenant.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        policy: Optional[PolicyEngine] = None,
        clock: Optional[Clock] = None,
    ):
        self.uow = uow
        self.policy = policy or PolicyEngine()
        self.clock = clock or utcnow

    async def _refresh_actor(self, actor: TenantContext) -> Result[TenantContext]:
        user = await self.uow.users.get_by_id(actor.user_id)
        if user is None or user.tenant_id != actor.tenant_id:
            return Return.err(TenantIsolationError("Actor does not belong to this tenant"))
        return Return.ok(
            TenantContext(
                tenant_id=user.tenant_id,
                user_id=user.id,
                global_role=user.global_role,
                active=user.active,
                version=user.version,
            )
        )

    async def _unchanged(self, actor: TenantContext, *users: User) -> bool:
        """
        Re-assert, under the write lock, that the actor and every user the
        decision was based on are still at the version read earlier in this
        unit of work. Call before the first write; rows already written in
        this unit of work must not be passed.
        """
        if not await self.uow.users.guard_version(actor.user_id, actor.version):
            return False
        for user in users:
            if not await self.uow.users.guard_version(user.id, user.version):
                return False
        return True

    async def _load_user(self, actor: TenantContext, user_id: UUID) -> Result[User]:
        user = await self.uow.users.get_by_id(user_id)
        if user is None:
            return Return.err(NotFoundError("User not found", code="USER_NOT_FOUND"))
        isolation = self.policy.check_tenant(actor, user.tenant_id)
        if isolation.is_err():
            return isolation
        return Return.ok(user)

    async def _load_team(self, actor: TenantContext, team_id: UUID) -> Result[Team]:
        team = await self.uow.teams.get_by_id(team_id)
        if team is None:
            return Return.err(NotFoundError("Team not found", code="TEAM_NOT_FOUND"))
        isolation = self.policy.check_tenant(actor, team.tenant_id)
        if isolation.is_err():
            return isolation
        return Return.ok(team)

    async def _audit(self, actor: TenantContext, action: str, **metadata: Any) -> None:
        await self.uow.audit_events.create(
            AuditEvent(
                tenant_id=actor.tenant_id,
                actor_id=actor.user_id,
                action=action,
                event_metadata={k: _jsonable(v) for k, v in metadata.items()},
            )
        )

    def _denied(self, operation: str, result: Result) -> Result:
        logger.warning(f"{operation} denied: {result.error.code}")
        return result


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
