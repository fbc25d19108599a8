"""
Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class GlobalRole(str, Enum):
    """Tenant-wide role, totally ordered by privilege (see RoleHierarchy)"""

    superadmin = "superadmin"
    admin = "admin"
    manager = "manager"
    employee = "employee"


class TeamRole(str, Enum):
    """Per-team label; carries no global privilege"""

    member = "member"
    lead = "lead"


class InvitationStatus(str, Enum):
    """Invitation lifecycle. pending is initial, the rest are terminal."""

    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    revoked = "revoked"


class ResourceAction(str, Enum):
    """Built-in resource actions. The set is extended through RESOURCE_ACTIONS."""

    view = "view"
    edit = "edit"
    approve = "approve"
    comment = "comment"
    delete = "delete"
