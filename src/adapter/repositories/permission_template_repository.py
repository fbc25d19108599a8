from typing import List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.permission_template_repository import (
    IPermissionTemplateRepository,
)
from src.domain.entities import PermissionTemplate

from .base import add_and_flush


class PermissionTemplateRepository(IPermissionTemplateRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, template_id: UUID) -> Optional[PermissionTemplate]:
        stmt = select(PermissionTemplate).where(PermissionTemplate.id == template_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_tenant_and_name(
        self, tenant_id: UUID, name: str
    ) -> Optional[PermissionTemplate]:
        stmt = select(PermissionTemplate).where(
            PermissionTemplate.tenant_id == tenant_id, PermissionTemplate.name == name
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_tenant(self, tenant_id: UUID) -> List[PermissionTemplate]:
        stmt = (
            select(PermissionTemplate)
            .where(PermissionTemplate.tenant_id == tenant_id)
            .order_by(PermissionTemplate.name)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, template: PermissionTemplate) -> PermissionTemplate:
        return await add_and_flush(self.session, template)
