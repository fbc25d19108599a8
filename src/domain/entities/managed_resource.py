"""
ManagedResource Entity

Ownership record written by the business entity layer (projects, reports...).
Read by the default resource-ownership lookup; never written by this service.
"""

from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Index, SQLModel


class ManagedResource(SQLModel, table=True):
    __tablename__ = "managed_resources"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    resource_type: str = Field(max_length=100)
    resource_id: str = Field(max_length=255)

    # Manager whose scope includes this resource
    manager_id: Optional[UUID] = Field(default=None, foreign_key="users.id")

    __table_args__ = (
        Index("idx_managed_resource", "resource_type", "resource_id", unique=True),
    )
