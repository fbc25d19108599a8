import logging
from typing import Optional

from src.domain.context import TenantContext
from src.domain.policy import Capability
from src.domain.result import Result, Return

from .base import AdminComponent
from .dtos import AuditEventsPage, AuditEventView

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AuditLog(AdminComponent):
    """Read side of the audit trail. Admins only, newest first."""

    async def get_audit_events(
        self, actor: TenantContext, limit: int = 50, cursor: Optional[str] = None
    ) -> Result[AuditEventsPage]:
        """
        Page through the tenant's audit trail, newest first.

        Args:
            actor: Authenticated caller (admin or above)
            limit: Page size, clamped to 1..MAX_PAGE_SIZE
            cursor: Opaque cursor from the previous page, or None for the first

        Returns:
            Result with events and the next cursor (None on the last page)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_audit_events", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(actor, Capability.view_audit_events, actor.tenant_id)
            if decision.is_err():
                return self._denied("get_audit_events", decision)

            limit = max(1, min(limit, MAX_PAGE_SIZE))
            events, next_cursor = await self.uow.audit_events.get_by_tenant_paginated(
                actor.tenant_id, limit=limit, cursor=cursor
            )
            return Return.ok(
                AuditEventsPage(
                    events=[AuditEventView.model_validate(event) for event in events],
                    next_cursor=next_cursor,
                )
            )
