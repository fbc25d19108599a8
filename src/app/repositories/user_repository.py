from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.domain.entities import User


class IUserRepository(ABC):
    """User repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID (always reads the current row)"""
        pass

    @abstractmethod
    async def get_by_tenant_and_email(self, tenant_id: UUID, email: str) -> Optional[User]:
        """Get user by email within a tenant"""
        pass

    @abstractmethod
    async def list_by_tenant(self, tenant_id: UUID) -> List[User]:
        """Get all users of a tenant"""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Create a new user"""
        pass

    @abstractmethod
    async def update_if_version(
        self, user_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        """
        Apply values and bump version only if the row is still at
        expected_version. Returns False when another writer got there first.
        """
        pass

    @abstractmethod
    async def guard_version(self, user_id: UUID, expected_version: int) -> bool:
        """
        Lock the row for the rest of the transaction if it is still at
        expected_version, without modifying it. Returns False otherwise.
        """
        pass
