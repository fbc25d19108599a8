"""
External collaborator interfaces

Implemented outside the authorization engine; defaults live in
src.adapter.services.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.context import TenantContext


class ResourceOwnershipLookup(ABC):
    """Answers ownership questions about business resources (projects, ...)"""

    @abstractmethod
    async def resource_owner_tenant(
        self, resource_type: str, resource_id: str
    ) -> Optional[UUID]:
        """Tenant owning the resource, None if the resource is unknown"""
        pass

    @abstractmethod
    async def manager_scope_includes(
        self, manager: TenantContext, resource_type: str, resource_id: str
    ) -> bool:
        """Whether the manager's scope covers the resource"""
        pass


class InvitationNotifier(ABC):
    """Delivers invitation tokens out-of-band"""

    @abstractmethod
    async def send_invitation(self, email: str, token: str, expires_at: datetime) -> None:
        pass
