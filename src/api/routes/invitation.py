"""
Invitation API Routes

Admin side (issue, list, revoke, resend) and the public token side
(inspect, accept).
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import (
    Credentials,
    InvitationDetails,
    InvitationView,
    InviteUserCommand,
    UserView,
)
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole

admin_router = APIRouter(prefix="/admin/invitations", tags=["Invitations"])
router = APIRouter(prefix="/invitations", tags=["Invitations"])


class InviteUserRequest(BaseModel):
    email: EmailStr
    proposed_role: GlobalRole = GlobalRole.employee
    full_name: Optional[str] = Field(None, max_length=255)


class AcceptInvitationRequest(BaseModel):
    password: str = Field(..., description="Password for the new account")
    full_name: Optional[str] = Field(None, max_length=255)


@admin_router.get("", response_model=List[InvitationView])
async def get_invitations(
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.get_invitations(actor))


@admin_router.post("", status_code=status.HTTP_201_CREATED, response_model=InvitationView)
async def invite_user(
    request: InviteUserRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Invite an email into the caller's tenant.

    The token goes to the invitation notifier only, never into the response.

    Raises:
        - 403 Forbidden: caller below admin
        - 409 Conflict: USER_EXISTS, INVITATION_PENDING
        - 422 Unprocessable Entity: ROLE_ESCALATION
    """
    command = InviteUserCommand(**request.model_dump())
    return unwrap(await service.invite_user(actor, command)).invitation


@admin_router.post("/{invitation_id}/revoke", response_model=InvitationView)
async def revoke_invitation(
    invitation_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.revoke_invitation(actor, invitation_id))


@admin_router.post("/{invitation_id}/resend", response_model=InvitationView)
async def resend_invitation(
    invitation_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.resend_invitation(actor, invitation_id)).invitation


@router.get("/{token}", response_model=InvitationDetails)
async def verify_invitation(
    token: str,
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Raises:
        - 410 Gone: INVITATION_TOKEN_INVALID (expired, consumed or unknown)
    """
    return unwrap(await service.verify_token(token))


@router.post("/{token}/accept", status_code=status.HTTP_201_CREATED, response_model=UserView)
async def accept_invitation(
    token: str,
    request: AcceptInvitationRequest,
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Redeem an invitation and activate the account.

    Raises:
        - 409 Conflict: USER_EXISTS
        - 410 Gone: INVITATION_TOKEN_INVALID
        - 422 Unprocessable Entity: INVALID_PASSWORD
    """
    credentials = Credentials(password=request.password, full_name=request.full_name)
    return unwrap(await service.accept_invitation(token, credentials))
