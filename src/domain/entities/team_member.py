"""
TeamMember Entity
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow

from .enums import TeamRole


class TeamMember(SQLModel, table=True):
    """Membership of a user in a team. Unique on (team_id, user_id)."""

    __tablename__ = "team_members"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    team_id: UUID = Field(foreign_key="teams.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    team_role: TeamRole = Field(default=TeamRole.member, nullable=False)
    added_by: Optional[UUID] = Field(default=None)

    joined_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_team_member_team_user", "team_id", "user_id", unique=True),
    )
