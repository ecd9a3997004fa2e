"""
SQLAlchemy модели базы данных
Имена колонок совпадают с полями документов пользователей (camelCase)
"""
import uuid

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Column, DateTime, Integer,
    String, Text, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from shared.config import DATABASE_URL

# Создаем базовый класс
Base = declarative_base()

# JSONB на PostgreSQL, обычный JSON на остальных диалектах
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Создаем async engine
engine = create_async_engine(
    DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://"),
    echo=False,
    pool_pre_ping=True,
    pool_size=20,
    max_overflow=40
)

# Создаем session maker
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


# ========== Модели ==========

class User(Base):
    """Аккаунт пользователя, один на Telegram ID"""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)  # Telegram ID строкой
    name = Column(String(255), default="")
    username = Column(String(255), default="")
    photo_url = Column("photoUrl", Text, nullable=True)

    # Балансы
    balance = Column(Integer, default=0, nullable=False)
    gems = Column(Integer, default=0, nullable=False)
    unclaimed_gems = Column("unclaimedGems", Integer, default=0, nullable=False)

    # Счётчики
    refs = Column(Integer, default=0, nullable=False)
    ad_watch = Column("adWatch", Integer, default=0, nullable=False)
    total_ads_watched = Column("totalAdsWatched", Integer, default=0, nullable=True)
    today_income = Column("todayIncome", Integer, default=0, nullable=False)
    total_withdrawn = Column("totalWithdrawn", Integer, default=0, nullable=False)

    # Суточный цикл получения гемов
    last_claim_date = Column("lastClaimDate", String(10), nullable=True)
    claimed_gems_today = Column("claimedGemsToday", Integer, default=0, nullable=False)

    # Суточный цикл рефералов (колонки добавлены позже, в старых записях NULL)
    last_ref_date = Column("lastRefDate", String(10), nullable=True)
    daily_ref_count = Column("dailyRefCount", Integer, default=0, nullable=True)
    daily_vouchers = Column("dailyVouchers", JSONType, nullable=True)

    # Происхождение (слабая ссылка, без внешнего ключа)
    referred_by = Column("referredBy", String(32), nullable=True, index=True)
    created_at = Column("createdAt", DateTime, default=func.now())

    # Верификация и задания
    is_verified = Column("isVerified", Boolean, default=False, nullable=True)
    verification_data = Column("verificationData", JSONType, nullable=True)
    completed_tasks = Column("completedTasks", JSONType, nullable=True)

    # Версия строки для оптимистичных транзакций
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("gems >= 0", name="ck_users_gems_non_negative"),
        CheckConstraint('"unclaimedGems" >= 0', name="ck_users_unclaimed_gems_non_negative"),
        CheckConstraint("refs >= 0", name="ck_users_refs_non_negative"),
    )

    def tasks(self) -> list:
        """Выполненные задания (пустой список для старых записей)"""
        return list(self.completed_tasks or [])

    def ref_count(self) -> int:
        return self.daily_ref_count or 0

    def verified(self) -> bool:
        return bool(self.is_verified)


class Transaction(Base):
    """Журнал начислений (только добавление)"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column("userId", String(32), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Integer, nullable=False)
    transaction_type = Column("type", String(20), nullable=False, default="credit")
    timestamp = Column(DateTime, default=func.now())

    __table_args__ = (
        Index('idx_transaction_timestamp', 'timestamp'),
    )


class AdReward(Base):
    """Обработанные колбэки рекламной сети (защита от повторов)"""
    __tablename__ = "ad_rewards"

    reward_id = Column(String(255), primary_key=True)
    user_id = Column(String(32), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=func.now())


# ========== Функции для работы с БД ==========

async def init_db():
    """Инициализация базы данных"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    """Получить сессию БД"""
    async with AsyncSessionLocal() as session:
        yield session


async def close_db():
    """Закрыть соединение с БД"""
    await engine.dispose()
