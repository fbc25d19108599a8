import base64
import binascii
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditEvent

from .base import add_and_flush


def encode_cursor(created_at: datetime) -> str:
    return base64.urlsafe_b64encode(created_at.isoformat().encode("utf-8")).decode("utf-8")


def decode_cursor(cursor: str) -> Optional[datetime]:
    """Opaque cursor -> timestamp; None for anything unparseable"""
    try:
        return datetime.fromisoformat(base64.urlsafe_b64decode(cursor).decode("utf-8"))
    except (ValueError, TypeError, binascii.Error):
        return None


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        return await add_and_flush(self.session, audit_event)

    async def get_by_tenant_paginated(
        self, tenant_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        stmt = select(AuditEvent).where(AuditEvent.tenant_id == tenant_id)

        before = decode_cursor(cursor) if cursor else None
        if before is not None:
            stmt = stmt.where(AuditEvent.created_at < before)

        # One extra row tells us whether another page exists
        stmt = stmt.order_by(AuditEvent.created_at.desc()).limit(limit + 1)
        result = await self.session.exec(stmt)
        events = list(result.all())

        next_cursor = None
        if len(events) > limit:
            events = events[:limit]
            next_cursor = encode_cursor(events[-1].created_at)

        return events, next_cursor
