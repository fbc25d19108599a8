"""
Team API Routes

Team lifecycle, membership and team-admin assignment.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.error import unwrap
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.dtos import (
    CreateTeamCommand,
    TeamMemberView,
    TeamView,
    UpdateTeamCommand,
)
from src.depends import get_admin_service, get_current_actor
from src.domain.context import TenantContext
from src.domain.entities import TeamRole

router = APIRouter(prefix="/admin/teams", tags=["Teams"])


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    team_admin_id: Optional[UUID] = None


class UpdateTeamRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class AddMemberRequest(BaseModel):
    user_id: UUID
    team_role: TeamRole = TeamRole.member


class AssignTeamAdminRequest(BaseModel):
    """user_id=null clears the team admin"""

    user_id: Optional[UUID] = None


@router.get("", response_model=List[TeamView])
async def get_teams(
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.get_teams(actor))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TeamView)
async def create_team(
    request: CreateTeamRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Raises:
        - 403 Forbidden: caller below admin
        - 409 Conflict: TEAM_NAME_TAKEN
        - 422 Unprocessable Entity: TEAM_ADMIN_NOT_MANAGER
    """
    command = CreateTeamCommand(**request.model_dump())
    return unwrap(await service.create_team(actor, command))


@router.patch("/{team_id}", response_model=TeamView)
async def update_team(
    team_id: UUID,
    request: UpdateTeamRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    command = UpdateTeamCommand(**request.model_dump())
    return unwrap(await service.update_team(actor, team_id, command))


@router.delete("/{team_id}", response_model=TeamView)
async def delete_team(
    team_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.delete_team(actor, team_id))


@router.get("/{team_id}/members", response_model=List[TeamMemberView])
async def get_team_members(
    team_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.get_team_members(actor, team_id))


@router.post(
    "/{team_id}/members", status_code=status.HTTP_201_CREATED, response_model=TeamMemberView
)
async def add_user_to_team(
    team_id: UUID,
    request: AddMemberRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Raises:
        - 403 Forbidden: caller is neither admin nor this team's admin
        - 409 Conflict: ALREADY_TEAM_MEMBER
        - 422 Unprocessable Entity: USER_INACTIVE
    """
    return unwrap(
        await service.add_user_to_team(actor, team_id, request.user_id, request.team_role)
    )


@router.delete("/members/{member_id}", response_model=TeamMemberView)
async def remove_user_from_team(
    member_id: UUID,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    return unwrap(await service.remove_user_from_team(actor, member_id))


@router.put("/{team_id}/admin", response_model=TeamView)
async def assign_team_admin(
    team_id: UUID,
    request: AssignTeamAdminRequest,
    actor: TenantContext = Depends(get_current_actor),
    service: DelegatedAdminService = Depends(get_admin_service),
):
    """
    Raises:
        - 403 Forbidden: caller below admin, candidate from another tenant
        - 409 Conflict: CONCURRENT_MODIFICATION
        - 422 Unprocessable Entity: TEAM_ADMIN_NOT_MANAGER, TEAM_ADMIN_INACTIVE
    """
    return unwrap(await service.assign_team_admin(actor, team_id, request.user_id))
