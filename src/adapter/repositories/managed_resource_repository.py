from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.managed_resource_repository import IManagedResourceRepository
from src.domain.entities import ManagedResource

from .base import add_and_flush


class ManagedResourceRepository(IManagedResourceRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_resource(
        self, resource_type: str, resource_id: str
    ) -> Optional[ManagedResource]:
        stmt = select(ManagedResource).where(
            ManagedResource.resource_type == resource_type,
            ManagedResource.resource_id == resource_id,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, resource: ManagedResource) -> ManagedResource:
        return await add_and_flush(self.session, resource)
