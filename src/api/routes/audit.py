"""
Audit API Routes

Handles audit event retrieval endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import AuditEventsPage
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext

router = APIRouter(prefix="/admin/audit-events", tags=["Audit"])


@router.get("", status_code=status.HTTP_200_OK, response_model=AuditEventsPage)
async def get_audit_events(
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
):
    """
    Delegated administration audit trail, newest first. Admins only.

    Returns:
        - events: audit events of the caller's tenant
        - next_cursor: cursor for the next page (null if no more events)
    """
    return unwrap(await service.get_audit_events(actor, limit=limit, cursor=cursor))
