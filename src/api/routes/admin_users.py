"""
Admin User API Routes

User lifecycle inside the caller's tenant.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import CreateUserCommand, UserView
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole

router = APIRouter(prefix="/admin/users", tags=["Users"])


class CreateUserRequest(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    global_role: GlobalRole = GlobalRole.employee
    password: str


class UpdateRoleRequest(BaseModel):
    global_role: GlobalRole


@router.get("", response_model=List[UserView])
async def get_tenant_users(
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.get_tenant_users(actor))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserView)
async def create_user(
    request: CreateUserRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Create a user directly, without an invitation.

    Raises:
        - 403 Forbidden: caller below admin
        - 409 Conflict: USER_EXISTS
        - 422 Unprocessable Entity: ROLE_ESCALATION, INVALID_PASSWORD
    """
    command = CreateUserCommand(**request.model_dump())
    return unwrap(await service.create_user(actor, command))


@router.patch("/{user_id}/role", response_model=UserView)
async def update_user_role(
    user_id: UUID,
    request: UpdateRoleRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Change a user's global role.

    Raises:
        - 403 Forbidden: cross-tenant target, caller below admin
        - 404 Not Found: USER_NOT_FOUND
        - 409 Conflict: CONCURRENT_MODIFICATION
        - 422 Unprocessable Entity: ROLE_ESCALATION, SELF_ROLE_CHANGE
    """
    return unwrap(await service.update_user_role(actor, user_id, request.global_role))


@router.post("/{user_id}/enable", response_model=UserView)
async def enable_user(
    user_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.enable_user(actor, user_id))


@router.post("/{user_id}/disable", response_model=UserView)
async def disable_user(
    user_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.disable_user(actor, user_id))


@router.delete("/{user_id}", response_model=UserView)
async def remove_user(
    user_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """Soft removal: the user is disabled and loses memberships and grants."""
    return unwrap(await service.remove_user(actor, user_id))
