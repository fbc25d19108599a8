"""
ResourcePermission Entity

Fine-grained grant of actions on one resource instance to one user.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class ResourcePermission(SQLModel, table=True):
    """
    ResourcePermission entity.

    Business Rules:
    - One row per (user_id, resource_type, resource_id)
    - Effective iff active and (expires_at is null or expires_at > now)
    - Expiry is evaluated at read time, never swept
    - A second grant unions its actions into the existing effective row
    """

    __tablename__ = "resource_permissions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    resource_type: str = Field(max_length=100)
    resource_id: str = Field(max_length=255)
    actions: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    granted_by: Optional[UUID] = Field(default=None)
    granted_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    active: bool = Field(default=True)
    version: int = Field(default=1)

    __table_args__ = (
        Index(
            "idx_permission_user_resource",
            "user_id",
            "resource_type",
            "resource_id",
            unique=True,
        ),
    )

    def is_effective(self, now: datetime) -> bool:
        return self.active and (self.expires_at is None or self.expires_at > now)
