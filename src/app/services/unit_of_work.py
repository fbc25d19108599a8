from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.invitation_repository import IInvitationRepository
from src.app.repositories.managed_resource_repository import IManagedResourceRepository
from src.app.repositories.permission_template_repository import IPermissionTemplateRepository
from src.app.repositories.resource_permission_repository import IResourcePermissionRepository
from src.app.repositories.team_member_repository import ITeamMemberRepository
from src.app.repositories.team_repository import ITeamRepository
from src.app.repositories.tenant_repository import ITenantRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - one transaction per operation"""

    # Repository properties (initialized in __aenter__)
    tenants: ITenantRepository
    users: IUserRepository
    teams: ITeamRepository
    team_members: ITeamMemberRepository
    resource_permissions: IResourcePermissionRepository
    permission_templates: IPermissionTemplateRepository
    managed_resources: IManagedResourceRepository
    invitations: IInvitationRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
