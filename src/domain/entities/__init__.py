"""
Domain Entities

One entity per module; enums live in enums.py.
"""

from .enums import (
    GlobalRole,
    InvitationStatus,
    ResourceAction,
    TeamRole,
)
from .tenant import Tenant
from .user import User
from .team import Team
from .team_member import TeamMember
from .resource_permission import ResourcePermission
from .permission_template import PermissionTemplate
from .managed_resource import ManagedResource
from .invitation import Invitation
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "GlobalRole",
    "TeamRole",
    "InvitationStatus",
    "ResourceAction",
    # Entities
    "Tenant",
    "User",
    "Team",
    "TeamMember",
    "ResourcePermission",
    "PermissionTemplate",
    "ManagedResource",
    "Invitation",
    "AuditEvent",
]
