import os

os.environ.setdefault("ADMIN_IDS", "1")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shared.database import Base, User
from bot_api.services.onboarding_service import OnboardingService


@pytest_asyncio.fixture
async def engine(tmp_path):
    """SQLite в файле; BEGIN IMMEDIATE сериализует транзакции как FOR UPDATE"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def create_user(session_factory):
    """Создать аккаунт напрямую с нужными значениями полей"""

    async def _create(user_id: str, **fields) -> None:
        user = OnboardingService.build_new_user(user_id, f"user{user_id}", None, None, None)
        for field, value in fields.items():
            setattr(user, field, value)
        async with session_factory() as session:
            session.add(user)
            await session.commit()

    return _create


@pytest.fixture
def load_user(session_factory):
    async def _load(user_id: str) -> User:
        async with session_factory() as session:
            return await session.get(User, user_id)

    return _load


class FakeRedis:
    """Минимальный in-memory заменитель redis.asyncio.Redis для тестов"""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def getdel(self, key):
        return self.data.pop(key, None)

    async def set(self, key, value):
        self.data[key] = value

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)

    async def ping(self):
        return True


@pytest.fixture
def fake_redis():
    return FakeRedis()
