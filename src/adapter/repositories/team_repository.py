from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.team_repository import ITeamRepository
from src.domain.entities import Team

from .base import add_and_flush, versioned_update


class TeamRepository(ITeamRepository):
    """Team repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, team_id: UUID) -> Optional[Team]:
        stmt = (
            select(Team)
            .where(Team.id == team_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_tenant_and_name(self, tenant_id: UUID, name: str) -> Optional[Team]:
        stmt = select(Team).where(Team.tenant_id == tenant_id, Team.name == name)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_tenant(self, tenant_id: UUID) -> List[Team]:
        stmt = (
            select(Team)
            .where(Team.tenant_id == tenant_id)
            .order_by(Team.name)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def list_by_admin(self, user_id: UUID) -> List[Team]:
        stmt = (
            select(Team)
            .where(Team.team_admin_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, team: Team) -> Team:
        return await add_and_flush(self.session, team)

    async def update_if_version(
        self, team_id: UUID, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        return await versioned_update(self.session, Team, team_id, expected_version, values)

    async def delete(self, team: Team) -> None:
        await self.session.delete(team)
        await self.session.flush()
