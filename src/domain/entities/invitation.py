"""
Invitation Entity

Pending invitations to join a tenant.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow

from .enums import GlobalRole, InvitationStatus


class Invitation(SQLModel, table=True):
    """
    Invitation entity - proposal to onboard an email with a role.

    Business Rules:
    - Created by an admin, proposed role strictly below the inviter's
    - Expires after INVITATION_TTL_DAYS (7 by default)
    - Token is single-use; only its SHA-256 digest is stored
    - pending -> accepted | expired | revoked, all terminal
    - At most one pending invitation per (tenant, email)
    """

    __tablename__ = "invitations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    email: str = Field(max_length=255, nullable=False, index=True)
    full_name: Optional[str] = Field(default=None, max_length=255)

    proposed_role: GlobalRole = Field(nullable=False)
    invited_by: UUID = Field(foreign_key="users.id", nullable=False)
    token_hash: str = Field(unique=True, index=True, max_length=64)

    status: InvitationStatus = Field(default=InvitationStatus.pending)

    # Timestamps
    expires_at: datetime = Field(sa_column=Column(DateTime))
    accepted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_invitation_tenant_email", "tenant_id", "email"),
        Index("idx_invitation_status", "status"),
        # At most one pending invitation per email and tenant
        Index(
            "uq_invitation_pending_email",
            "tenant_id",
            "email",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
