from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.team_member_repository import ITeamMemberRepository
from src.domain.entities import TeamMember, User

from .base import add_and_flush


class TeamMemberRepository(ITeamMemberRepository):
    """TeamMember repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, member_id: UUID) -> Optional[TeamMember]:
        stmt = select(TeamMember).where(TeamMember.id == member_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_team_and_user(
        self, team_id: UUID, user_id: UUID
    ) -> Optional[TeamMember]:
        stmt = select(TeamMember).where(
            TeamMember.team_id == team_id, TeamMember.user_id == user_id
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_team_with_users(self, team_id: UUID) -> List[Tuple[TeamMember, User]]:
        stmt = (
            select(TeamMember, User)
            .join(User, User.id == TeamMember.user_id)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, member: TeamMember) -> TeamMember:
        return await add_and_flush(self.session, member)

    async def delete(self, member: TeamMember) -> None:
        await self.session.delete(member)
        await self.session.flush()

    async def delete_by_team(self, team_id: UUID) -> int:
        stmt = (
            delete(TeamMember)
            .where(TeamMember.team_id == team_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_by_user(self, user_id: UUID) -> int:
        stmt = (
            delete(TeamMember)
            .where(TeamMember.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
