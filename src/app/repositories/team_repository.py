from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.domain.entities import Team


class ITeamRepository(ABC):
    """Team repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, team_id: UUID) -> Optional[Team]:
        """Get team by ID (always reads the current row)"""
        pass

    @abstractmethod
    async def get_by_tenant_and_name(self, tenant_id: UUID, name: str) -> Optional[Team]:
        """Get team by name within a tenant"""
        pass

    @abstractmethod
    async def list_by_tenant(self, tenant_id: UUID) -> List[Team]:
        """Get all teams of a tenant ordered by name"""
        pass

    @abstractmethod
    async def list_by_admin(self, user_id: UUID) -> List[Team]:
        """Get all teams administered by a user"""
        pass

    @abstractmethod
    async def create(self, team: Team) -> Team:
        """Create a new team"""
        pass

    @abstractmethod
    async def update_if_version(
        self, team_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        """Versioned update, False when the row moved on"""
        pass

    @abstractmethod
    async def delete(self, team: Team) -> None:
        """Physically delete a team"""
        pass
