"""
Role Hierarchy

Fixed, totally ordered set of global roles:
superadmin > admin > manager > employee
"""

from typing import Dict, Union

from .entities.enums import GlobalRole

RoleLike = Union[GlobalRole, str]


class RoleHierarchy:
    RANKS: Dict[GlobalRole, int] = {
        GlobalRole.superadmin: 3,
        GlobalRole.admin: 2,
        GlobalRole.manager: 1,
        GlobalRole.employee: 0,
    }

    def rank(self, role: RoleLike) -> int:
        """Raises ValueError for anything outside the GlobalRole enum."""
        return self.RANKS[GlobalRole(role)]

    def can_assign(self, actor_role: RoleLike, target_role: RoleLike) -> bool:
        """
        A role can only be handed out by someone strictly above it.

        No actor can assign a role equal to or above their own rank, so
        superadmin is never assignable through this engine.
        """
        return self.rank(actor_role) > self.rank(target_role)

    def at_least(self, role: RoleLike, minimum: RoleLike) -> bool:
        return self.rank(role) >= self.rank(minimum)

    def outranks(self, role: RoleLike, other: RoleLike) -> bool:
        return self.rank(role) > self.rank(other)


ROLE_HIERARCHY = RoleHierarchy()
