from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from src.domain.entities import PermissionTemplate


class IPermissionTemplateRepository(ABC):
    """PermissionTemplate repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, template_id: UUID) -> Optional[PermissionTemplate]:
        pass

    @abstractmethod
    async def get_by_tenant_and_name(
        self, tenant_id: UUID, name: str
    ) -> Optional[PermissionTemplate]:
        pass

    @abstractmethod
    async def list_by_tenant(self, tenant_id: UUID) -> List[PermissionTemplate]:
        pass

    @abstractmethod
    async def create(self, template: PermissionTemplate) -> PermissionTemplate:
        pass
