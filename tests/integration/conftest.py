from typing import Dict, List, Tuple

import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from tests.fixtures.json_loader import TestDataLoader
from config import ApplicationConfig
from src.adapter.services.resource_ownership import SqlResourceOwnershipLookup
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import create_access_token
from src.app.services.collaborators import InvitationNotifier
from src.app.services.delegated_admin_service import DelegatedAdminService
from src.depends import get_admin_service, get_unit_of_work
from src.domain.context import TenantContext
from src.domain.entities import GlobalRole, ManagedResource, Tenant, User


class FastHashConfig(ApplicationConfig):
    # Minimum bcrypt cost keeps account activation fast under test
    BCRYPT_ROUNDS = 4


class RecordingNotifier(InvitationNotifier):
    def __init__(self):
        self.sent: List[Tuple[str, str, object]] = []

    async def send_invitation(self, email, token, expires_at) -> None:
        self.sent.append((email, token, expires_at))

    @property
    def last_token(self) -> str:
        return self.sent[-1][1]


class SeededData:
    def __init__(self, tenants: Dict[str, Tenant], users: Dict[str, User]):
        self.tenants = tenants
        self.users = users

    def user(self, key: str) -> User:
        return self.users[key]

    def actor(self, key: str) -> TenantContext:
        user = self.users[key]
        return TenantContext(
            tenant_id=user.tenant_id, user_id=user.id, global_role=user.global_role
        )

    def auth(self, key: str) -> Dict[str, str]:
        user = self.users[key]
        token = create_access_token(user.id, user.tenant_id, user.global_role.value)
        return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
def test_data():
    return TestDataLoader()


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File database: concurrent sessions need separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(db_session, test_data) -> SeededData:
    tenants = {}
    for row in test_data.get("tenants"):
        tenants[row["key"]] = Tenant(name=row["name"])
        db_session.add(tenants[row["key"]])

    users = {}
    for row in test_data.get("users"):
        users[row["key"]] = User(
            tenant_id=tenants[row["tenant"]].id,
            email=row["email"],
            full_name=row["full_name"],
            global_role=GlobalRole(row["global_role"]),
        )
        db_session.add(users[row["key"]])

    for row in test_data.get("managed_resources"):
        db_session.add(
            ManagedResource(
                tenant_id=tenants[row["tenant"]].id,
                resource_type=row["resource_type"],
                resource_id=row["resource_id"],
                manager_id=users[row["manager"]].id if row["manager"] else None,
            )
        )

    await db_session.commit()
    return SeededData(tenants, users)


@pytest_asyncio.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def make_service(session_factory, notifier):
    """Builds a façade on its own session, as one request would get"""
    sessions = []

    def factory(clock=None) -> DelegatedAdminService:
        session = session_factory()
        sessions.append(session)
        uow = SqlAlchemyUnitOfWork(session)
        return DelegatedAdminService.from_config(
            uow, FastHashConfig, SqlResourceOwnershipLookup(uow), notifier, clock=clock
        )

    yield factory

    for session in sessions:
        await session.close()


@pytest_asyncio.fixture
def service(make_service) -> DelegatedAdminService:
    return make_service()


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    from src.api.app import create_app

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    def override_get_admin_service(uow=Depends(get_unit_of_work)):
        return DelegatedAdminService.from_config(
            uow, FastHashConfig, SqlResourceOwnershipLookup(uow), notifier
        )

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_admin_service] = override_get_admin_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
