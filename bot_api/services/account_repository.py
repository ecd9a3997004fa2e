"""
Репозиторий аккаунтов поверх транзакций БД
Ни один метод, кроме run_transaction, не делает commit
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from shared.config import LEDGER_TXN_MAX_ATTEMPTS
from shared.database import User
from shared.errors import InternalFailure, NotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Поля, которые можно менять относительным приращением
COUNTER_FIELDS = {
    "balance",
    "gems",
    "unclaimed_gems",
    "refs",
    "ad_watch",
    "total_ads_watched",
    "today_income",
    "total_withdrawn",
    "daily_ref_count",
}

# Поля-множества (JSON списки)
SET_FIELDS = {"completed_tasks"}


class AccountRepository:
    """Типизированный доступ к документам пользователей"""

    @staticmethod
    async def get(session: AsyncSession, user_id: str, for_update: bool = False) -> Optional[User]:
        """
        Получить аккаунт

        Args:
            for_update: Заблокировать строку до конца транзакции (SELECT FOR UPDATE)
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_if_absent(session: AsyncSession, user: User) -> bool:
        """
        Создать аккаунт, если его ещё нет

        Проверка существования идёт в транзакции вызывающего кода;
        параллельная вставка того же ID упадёт на первичном ключе при commit.

        Returns:
            True если аккаунт добавлен
        """
        existing = await AccountRepository.get(session, user.id)
        if existing is not None:
            logger.info(f"User {user.id} already exists")
            return False

        session.add(user)
        await session.flush()
        return True

    @staticmethod
    async def apply_delta(session: AsyncSession, user_id: str, deltas: Dict[str, int]) -> None:
        """
        Атомарно применить приращения одним UPDATE

        UPDATE users SET col = col + :n, version = version + 1 WHERE id = :id.
        Уменьшение, уводящее поле в минус, не совпадает ни с одной строкой.

        Raises:
            NotFound: аккаунт отсутствует или уменьшение невозможно
        """
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            raise ValueError(f"Not a counter field: {', '.join(sorted(unknown))}")

        values: Dict[str, Any] = {}
        conditions = [User.id == user_id]

        for field, delta in deltas.items():
            column = getattr(User, field)
            values[field] = func.coalesce(column, 0) + delta
            if delta < 0:
                conditions.append(func.coalesce(column, 0) + delta >= 0)

        values["version"] = User.version + 1

        result = await session.execute(
            update(User)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            raise NotFound(f"User {user_id} not found or delta would go negative.")

        logger.debug(f"Applied delta to user {user_id}: {deltas}")

    @staticmethod
    def append_to_set(user: User, field: str, value: str) -> bool:
        """
        Добавить значение в поле-множество загруженного аккаунта

        Returns:
            False если значение уже есть (ничего не меняется)
        """
        if field not in SET_FIELDS:
            raise ValueError(f"Not a set field: {field}")

        current = list(getattr(user, field) or [])
        if value in current:
            return False

        # Новый список, чтобы ORM увидел изменение JSON колонки
        setattr(user, field, current + [value])
        return True

    @staticmethod
    async def list_user_ids(session: AsyncSession) -> List[str]:
        """
        Все ID аккаунтов (для рассылки)
        """
        result = await session.execute(select(User.id))
        return list(result.scalars())

    @staticmethod
    async def run_transaction(
        session: AsyncSession,
        operation: Callable[[AsyncSession], Awaitable[T]],
        max_attempts: int = LEDGER_TXN_MAX_ATTEMPTS
    ) -> T:
        """
        Выполнить операцию в транзакции с повтором при конфликте версий

        operation должна заново читать все данные, на которых основаны
        её решения: при повторе она вызывается с чистой транзакцией.
        Любая другая ошибка откатывает транзакцию и пробрасывается.
        """
        for attempt in range(1, max_attempts + 1):
            try:
                result = await operation(session)
                await session.commit()
                return result

            except StaleDataError:
                await session.rollback()
                logger.warning(
                    f"Transaction conflict, retrying (attempt {attempt}/{max_attempts})"
                )

            except Exception:
                await session.rollback()
                raise

        logger.error(f"Transaction failed after {max_attempts} attempts")
        raise InternalFailure("The request conflicted with concurrent updates. Please try again.")
