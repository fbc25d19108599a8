from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import (
    CreatePermissionTemplateCommand,
    PermissionTemplateView,
    PermissionView,
)
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext

router = APIRouter(prefix="/admin/permission-templates", tags=["Permission Templates"])


class CreateTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    resource_type: str = Field(..., min_length=1, max_length=100)
    actions: List[str]


class GrantFromTemplateRequest(BaseModel):
    user_id: UUID
    resource_id: str = Field(..., min_length=1, max_length=255)
    expires_at: Optional[datetime] = None


@router.get("", response_model=List[PermissionTemplateView])
async def get_permission_templates(
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.get_permission_templates(actor))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PermissionTemplateView)
async def create_permission_template(
    request: CreateTemplateRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    command = CreatePermissionTemplateCommand(**request.model_dump())
    return unwrap(await service.create_permission_template(actor, command))


@router.post("/{template_id}/grant", response_model=PermissionView)
async def grant_from_template(
    template_id: UUID,
    request: GrantFromTemplateRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(
        await service.grant_from_template(
            actor, template_id, request.user_id, request.resource_id, request.expires_at
        )
    )
