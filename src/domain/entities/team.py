"""
Team Entity
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class Team(SQLModel, table=True):
    """
    Team entity - a named group of users inside a tenant.

    Business Rules:
    - Name is unique within a tenant
    - team_admin_id is a plain reference resolved through the user store;
      it must point at a manager of the same tenant or be empty
    """

    __tablename__ = "teams"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)

    team_admin_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_by: Optional[UUID] = Field(default=None)
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_team_tenant_name", "tenant_id", "name", unique=True),
        Index("idx_team_admin", "team_admin_id"),
    )
