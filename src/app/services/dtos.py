"""
Delegated Administration DTOs (Data Transfer Objects)

Commands coming into the components and views going out.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities import GlobalRole, InvitationStatus, TeamRole


# ============================================================================
# Commands
# ============================================================================


class InviteUserCommand(BaseModel):
    email: str
    proposed_role: GlobalRole = GlobalRole.employee
    full_name: Optional[str] = None


class CreateUserCommand(BaseModel):
    email: str
    full_name: str
    global_role: GlobalRole = GlobalRole.employee
    password: str


class Credentials(BaseModel):
    """Material supplied by the invitee when activating their account"""

    password: str
    full_name: Optional[str] = None


class CreateTeamCommand(BaseModel):
    name: str
    description: Optional[str] = None
    team_admin_id: Optional[UUID] = None


class UpdateTeamCommand(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class GrantPermissionCommand(BaseModel):
    user_id: UUID
    resource_type: str
    resource_id: str
    actions: List[str]
    expires_at: Optional[datetime] = None


class CreatePermissionTemplateCommand(BaseModel):
    name: str
    description: Optional[str] = None
    resource_type: str
    actions: List[str]


# ============================================================================
# Views
# ============================================================================


class EntityView(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserView(EntityView):
    id: UUID
    tenant_id: UUID
    email: str
    full_name: str
    global_role: GlobalRole
    active: bool
    created_at: Optional[datetime] = None


class TeamView(EntityView):
    id: UUID
    tenant_id: UUID
    name: str
    description: Optional[str] = None
    team_admin_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class TeamMemberView(BaseModel):
    id: UUID
    team_id: UUID
    user_id: UUID
    team_role: TeamRole
    joined_at: datetime
    full_name: str
    email: str
    global_role: GlobalRole


class PermissionView(EntityView):
    id: UUID
    tenant_id: UUID
    user_id: UUID
    resource_type: str
    resource_id: str
    actions: List[str]
    granted_by: Optional[UUID] = None
    granted_at: datetime
    expires_at: Optional[datetime] = None
    active: bool


class PermissionTemplateView(EntityView):
    id: UUID
    name: str
    description: Optional[str] = None
    resource_type: str
    actions: List[str]


class InvitationView(EntityView):
    id: UUID
    tenant_id: UUID
    email: str
    full_name: Optional[str] = None
    proposed_role: GlobalRole
    invited_by: UUID
    status: InvitationStatus
    expires_at: datetime
    accepted_at: Optional[datetime] = None


class IssuedInvitation(BaseModel):
    """Returned once from invite/resend; the raw token is never stored"""

    invitation: InvitationView
    token: str


class InvitationDetails(BaseModel):
    """What an invitee may see before accepting"""

    email: str
    full_name: Optional[str] = None
    proposed_role: GlobalRole
    tenant_name: str
    expires_at: datetime


class AuditEventView(EntityView):
    id: UUID
    actor_id: Optional[UUID] = None
    action: str
    event_metadata: Optional[dict] = None
    created_at: datetime


class AuditEventsPage(BaseModel):
    events: List[AuditEventView] = Field(default_factory=list)
    next_cursor: Optional[str] = None
