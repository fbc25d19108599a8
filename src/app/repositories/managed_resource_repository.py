from abc import ABC, abstractmethod
from typing import Optional

from src.domain.entities import ManagedResource


class IManagedResourceRepository(ABC):
    """ManagedResource repository interface - read side for ownership lookups"""

    @abstractmethod
    async def get_by_resource(
        self, resource_type: str, resource_id: str
    ) -> Optional[ManagedResource]:
        pass

    @abstractmethod
    async def create(self, resource: ManagedResource) -> ManagedResource:
        pass
