"""
User Entity

A person inside exactly one tenant.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow

from .enums import GlobalRole


class User(SQLModel, table=True):
    """
    User entity - a member of one tenant with a global role.

    Business Rules:
    - Email is unique within a tenant
    - Never physically deleted here; disabled via active=False
    - superadmin is seeded out-of-band, never assigned through the engine
    - version is bumped on every role/active change (optimistic concurrency)
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    email: str = Field(max_length=255)
    full_name: str = Field(default="", max_length=255)
    password_hash: Optional[str] = Field(default=None, max_length=60)

    global_role: GlobalRole = Field(default=GlobalRole.employee, nullable=False)
    active: bool = Field(default=True)
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_user_tenant_email", "tenant_id", "email", unique=True),
    )
