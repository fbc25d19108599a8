"""
Resource Permission API Routes
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import GrantPermissionCommand, PermissionView
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext

router = APIRouter(prefix="/admin/permissions", tags=["Permissions"])


class GrantPermissionRequest(BaseModel):
    user_id: UUID
    resource_type: str = Field(..., min_length=1, max_length=100)
    resource_id: str = Field(..., min_length=1, max_length=255)
    actions: List[str]
    expires_at: Optional[datetime] = None


@router.get("", response_model=List[PermissionView])
async def get_user_resource_permissions(
    user_id: UUID = Query(..., description="User whose effective grants are listed"),
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """Effective grants only: active and not expired."""
    return unwrap(await service.get_user_resource_permissions(actor, user_id))


@router.post("", status_code=status.HTTP_200_OK, response_model=PermissionView)
async def grant_resource_permission(
    request: GrantPermissionRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Grant actions on a resource, merging into an existing grant.

    Raises:
        - 403 Forbidden: cross-tenant resource, manager outside their scope
        - 404 Not Found: RESOURCE_NOT_FOUND, USER_NOT_FOUND
        - 409 Conflict: CONCURRENT_MODIFICATION (retries exhausted)
        - 422 Unprocessable Entity: INVALID_ACTIONS, INVALID_EXPIRY
    """
    command = GrantPermissionCommand(**request.model_dump())
    return unwrap(await service.grant_resource_permission(actor, command))


@router.delete("/{permission_id}", response_model=PermissionView)
async def revoke_resource_permission(
    permission_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.revoke_resource_permission(actor, permission_id))
