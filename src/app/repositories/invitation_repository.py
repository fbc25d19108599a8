from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.domain.entities import Invitation, InvitationStatus


class IInvitationRepository(ABC):
    """Invitation repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, invitation_id: UUID) -> Optional[Invitation]:
        """Get invitation by ID"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[Invitation]:
        """Get invitation by the SHA-256 digest of its token"""
        pass

    @abstractmethod
    async def get_pending_by_tenant_and_email(
        self, tenant_id: UUID, email: str
    ) -> Optional[Invitation]:
        """Get pending invitation by tenant and email"""
        pass

    @abstractmethod
    async def list_by_tenant(self, tenant_id: UUID) -> List[Invitation]:
        """Get all invitations for a tenant, newest first"""
        pass

    @abstractmethod
    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation"""
        pass

    @abstractmethod
    async def transition(
        self,
        invitation_id: UUID,
        from_status: InvitationStatus,
        to_status: InvitationStatus,
        values: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Compare-and-set status change. Only one caller can move an
        invitation out of from_status; everyone else gets False.
        """
        pass
