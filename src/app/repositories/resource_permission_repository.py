from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.domain.entities import ResourcePermission


class IResourcePermissionRepository(ABC):
    """ResourcePermission repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, permission_id: UUID) -> Optional[ResourcePermission]:
        """Get grant by ID (always reads the current row)"""
        pass

    @abstractmethod
    async def get_by_user_and_resource(
        self, user_id: UUID, resource_type: str, resource_id: str
    ) -> Optional[ResourcePermission]:
        """Get the grant row for (user, resource_type, resource_id)"""
        pass

    @abstractmethod
    async def list_by_user(self, tenant_id: UUID, user_id: UUID) -> List[ResourcePermission]:
        """Get all grant rows of a user inside a tenant, effective or not"""
        pass

    @abstractmethod
    async def create(self, permission: ResourcePermission) -> ResourcePermission:
        """Create a new grant"""
        pass

    @abstractmethod
    async def update_if_version(
        self, permission_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        """Versioned update, False when the row moved on"""
        pass

    @abstractmethod
    async def deactivate_by_user(self, tenant_id: UUID, user_id: UUID) -> int:
        """Deactivate every grant of a user. Returns count."""
        pass
