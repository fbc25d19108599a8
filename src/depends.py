from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.invitation_notifier import LoggingInvitationNotifier
from src.adapter.services.resource_ownership import SqlResourceOwnershipLookup
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import verify_jwt
from src.app.services.collaborators import InvitationNotifier
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.app.services.unit_of_work import UnitOfWork
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer()


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_invitation_notifier() -> InvitationNotifier:
    return LoggingInvitationNotifier()


def get_admin_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    notifier: InvitationNotifier = Depends(get_invitation_notifier),
) -> DelegatedAdminService:
    return DelegatedAdminService.from_config(
        uow, ApplicationConfig, SqlResourceOwnershipLookup(uow), notifier
    )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TenantContext:
    """
    Resolve the authenticated actor from the bearer token.

    The role claim is only a hint; components re-read the actor's role and
    tenant from storage before every decision.

    Raises:
        HTTPException: 401 if token is invalid, expired or malformed
    """
    payload = verify_jwt(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    try:
        return TenantContext(
            tenant_id=UUID(payload["tenant_id"]),
            user_id=UUID(payload["user_id"]),
            global_role=GlobalRole(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed token claims",
        )
