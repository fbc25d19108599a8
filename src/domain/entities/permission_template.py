"""
PermissionTemplate Entity

Named, reusable action set for one resource type.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class PermissionTemplate(SQLModel, table=True):
    __tablename__ = "permission_templates"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    resource_type: str = Field(max_length=100)
    actions: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_by: Optional[UUID] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_template_tenant_name", "tenant_id", "name", unique=True),
    )
