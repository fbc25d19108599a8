from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.resource_permission_repository import (
    IResourcePermissionRepository,
)
from src.domain.entities import ResourcePermission

from .base import add_and_flush, versioned_update


class ResourcePermissionRepository(IResourcePermissionRepository):
    """ResourcePermission repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, permission_id: UUID) -> Optional[ResourcePermission]:
        stmt = (
            select(ResourcePermission)
            .where(ResourcePermission.id == permission_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_user_and_resource(
        self, user_id: UUID, resource_type: str, resource_id: str
    ) -> Optional[ResourcePermission]:
        stmt = (
            select(ResourcePermission)
            .where(
                ResourcePermission.user_id == user_id,
                ResourcePermission.resource_type == resource_type,
                ResourcePermission.resource_id == resource_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_user(self, tenant_id: UUID, user_id: UUID) -> List[ResourcePermission]:
        stmt = (
            select(ResourcePermission)
            .where(
                ResourcePermission.tenant_id == tenant_id,
                ResourcePermission.user_id == user_id,
            )
            .order_by(ResourcePermission.resource_type, ResourcePermission.resource_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, permission: ResourcePermission) -> ResourcePermission:
        return await add_and_flush(self.session, permission)

    async def update_if_version(
        self, permission_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        return await versioned_update(
            self.session, ResourcePermission, permission_id, expected_version, values
        )

    async def deactivate_by_user(self, tenant_id: UUID, user_id: UUID) -> int:
        stmt = (
            update(ResourcePermission)
            .where(
                ResourcePermission.tenant_id == tenant_id,
                ResourcePermission.user_id == user_id,
                ResourcePermission.active == True,  # noqa: E712
            )
            .values(active=False, version=ResourcePermission.version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
