from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.invitation_repository import InvitationRepository
from src.adapter.repositories.managed_resource_repository import ManagedResourceRepository
from src.adapter.repositories.permission_template_repository import (
    PermissionTemplateRepository,
)
from src.adapter.repositories.resource_permission_repository import (
    ResourcePermissionRepository,
)
from src.adapter.repositories.team_member_repository import TeamMemberRepository
from src.adapter.repositories.team_repository import TeamRepository
from src.adapter.repositories.tenant_repository import TenantRepository
from src.adapter.repositories.user_repository import UserRepository
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.tenants = TenantRepository(self.session)
        self.users = UserRepository(self.session)
        self.teams = TeamRepository(self.session)
        self.team_members = TeamMemberRepository(self.session)
        self.resource_permissions = ResourcePermissionRepository(self.session)
        self.permission_templates = PermissionTemplateRepository(self.session)
        self.managed_resources = ManagedResourceRepository(self.session)
        self.invitations = InvitationRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        return self

    async def __aexit__(self, *args):
        # Anything not committed explicitly is discarded
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
