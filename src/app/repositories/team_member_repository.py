from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from uuid import UUID

from src.domain.entities import TeamMember, User


class ITeamMemberRepository(ABC):
    """TeamMember repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, member_id: UUID) -> Optional[TeamMember]:
        """Get membership by ID"""
        pass

    @abstractmethod
    async def get_by_team_and_user(
        self, team_id: UUID, user_id: UUID
    ) -> Optional[TeamMember]:
        """Get membership by team and user"""
        pass

    @abstractmethod
    async def list_by_team_with_users(self, team_id: UUID) -> List[Tuple[TeamMember, User]]:
        """Get members of a team joined with their user rows"""
        pass

    @abstractmethod
    async def create(self, member: TeamMember) -> TeamMember:
        """Create a new membership"""
        pass

    @abstractmethod
    async def delete(self, member: TeamMember) -> None:
        """Delete a membership"""
        pass

    @abstractmethod
    async def delete_by_team(self, team_id: UUID) -> int:
        """Delete every membership of a team. Returns count."""
        pass

    @abstractmethod
    async def delete_by_user(self, user_id: UUID) -> int:
        """Delete every membership of a user. Returns count."""
        pass
