from typing import Optional
from uuid import UUID

from src.app.services.collaborators import ResourceOwnershipLookup
from src.app.services.unit_of_work import UnitOfWork
from src.domain.context import TenantContext


class SqlResourceOwnershipLookup(ResourceOwnershipLookup):
    """
    Reads the managed_resources table maintained by the business entity layer.

    Must be called inside an open unit of work so the lookup shares the
    caller's transaction.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def resource_owner_tenant(
        self, resource_type: str, resource_id: str
    ) -> Optional[UUID]:
        resource = await self.uow.managed_resources.get_by_resource(resource_type, resource_id)
        return resource.tenant_id if resource else None

    async def manager_scope_includes(
        self, manager: TenantContext, resource_type: str, resource_id: str
    ) -> bool:
        resource = await self.uow.managed_resources.get_by_resource(resource_type, resource_id)
        if resource is None:
            return False
        return resource.tenant_id == manager.tenant_id and resource.manager_id == manager.user_id
