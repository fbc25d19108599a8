from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.user_repository import IUserRepository
from src.domain.entities import User

from .base import add_and_flush, version_guard, versioned_update


class UserRepository(IUserRepository):
    """User repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_tenant_and_email(self, tenant_id: UUID, email: str) -> Optional[User]:
        stmt = select(User).where(User.tenant_id == tenant_id, User.email == email)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_tenant(self, tenant_id: UUID) -> List[User]:
        stmt = (
            select(User)
            .where(User.tenant_id == tenant_id)
            .order_by(User.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, user: User) -> User:
        return await add_and_flush(self.session, user)

    async def update_if_version(
        self, user_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        return await versioned_update(self.session, User, user_id, expected_version, values)

    async def guard_version(self, user_id: UUID, expected_version: int) -> bool:
        return await version_guard(self.session, User, user_id, expected_version)
