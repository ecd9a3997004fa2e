"""
Сервис балансов: суточное получение гемов и награды за просмотр рекламы
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared import daily_cycle
from shared.config import DAILY_GEM_CLAIM_LIMIT, AD_REWARD_AMOUNT, AD_REWARD_FIELD
from shared.database import AdReward
from shared.errors import NotFound, NoGemsAvailable, DailyLimitReached
from shared.schemas import AccountSnapshot
from bot_api.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)


class BalanceService:
    """Сервис управления балансом"""

    @staticmethod
    async def get_account_snapshot(session: AsyncSession, user_id: str) -> AccountSnapshot:
        """
        Получить аккаунт со значениями по умолчанию

        Raises:
            NotFound: аккаунта нет
        """
        user = await AccountRepository.get(session, user_id)
        if user is None:
            raise NotFound()
        return AccountSnapshot.from_user(user)

    @staticmethod
    async def claim_gems(
        session: AsyncSession,
        user_id: str,
        today: Optional[str] = None
    ) -> int:
        """
        АТОМАРНО перевести unclaimedGems в gems с суточным лимитом

        Строка блокируется на чтение (SELECT FOR UPDATE) и записывается
        с проверкой версии, поэтому два параллельных запроса не могут
        оба пройти проверку лимита.

        Returns:
            Количество переведённых гемов

        Raises:
            NotFound, NoGemsAvailable, DailyLimitReached
        """
        current_date = today or daily_cycle.today()

        async def operation(session: AsyncSession) -> int:
            user = await AccountRepository.get(session, user_id, for_update=True)
            if user is None:
                raise NotFound()

            unclaimed = user.unclaimed_gems or 0
            if unclaimed <= 0:
                raise NoGemsAvailable()

            claimed_today = daily_cycle.effective_counter(
                user.last_claim_date, user.claimed_gems_today, current_date
            )
            if claimed_today >= DAILY_GEM_CLAIM_LIMIT:
                raise DailyLimitReached(DAILY_GEM_CLAIM_LIMIT)

            to_claim = min(unclaimed, DAILY_GEM_CLAIM_LIMIT - claimed_today)

            user.unclaimed_gems = unclaimed - to_claim
            user.gems = (user.gems or 0) + to_claim
            # Абсолютное значение относительно эффективной базы дня
            user.claimed_gems_today = claimed_today + to_claim
            user.last_claim_date = current_date

            return to_claim

        claimed = await AccountRepository.run_transaction(session, operation)

        logger.info(f"User {user_id} claimed {claimed} gems on {current_date}")

        return claimed

    @staticmethod
    async def grant_ad_reward(
        session: AsyncSession,
        user_id: str,
        reward_id: Optional[str] = None
    ) -> bool:
        """
        Начислить награду за просмотр рекламы

        Без reward_id колбэк выполняется всегда (повтор платит дважды).
        С reward_id повторный колбэк с тем же ID ничего не начисляет.

        Returns:
            True если награда начислена, False если reward_id уже обработан

        Raises:
            NotFound: аккаунта нет
        """
        async def operation(session: AsyncSession) -> bool:
            if reward_id:
                if await session.get(AdReward, reward_id) is not None:
                    return False
                session.add(AdReward(reward_id=reward_id, user_id=user_id, amount=AD_REWARD_AMOUNT))

            await AccountRepository.apply_delta(session, user_id, {
                AD_REWARD_FIELD: AD_REWARD_AMOUNT,
                "ad_watch": 1,
                "total_ads_watched": 1,
            })
            return True

        try:
            granted = await AccountRepository.run_transaction(session, operation)
        except IntegrityError:
            # Параллельный колбэк с тем же reward_id успел зафиксироваться первым
            granted = False

        if granted:
            logger.info(f"Ad reward {AD_REWARD_AMOUNT} {AD_REWARD_FIELD} granted to user {user_id}")
        else:
            logger.warning(f"Duplicate ad reward callback {reward_id} for user {user_id} ignored")

        return granted
