"""
Регистрация пользователей и начисление реферальных наград
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared import daily_cycle
from shared.config import WELCOME_BONUS, REFERRER_BONUS, REFERRER_GEM_BONUS
from shared.database import User, Transaction
from bot_api.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)

WELCOME_DESCRIPTION = "Welcome Bonus"


@dataclass
class OnboardingResult:
    """Итог /start"""
    created: bool
    referrer_id: Optional[str] = None  # реферер, получивший награду
    failed: bool = False


def referrer_notification_text(new_user_name: str) -> str:
    return (
        f"🎉 Congratulations! A new user, {new_user_name}, has joined using your link. "
        f"You've earned {REFERRER_BONUS} TK and {REFERRER_GEM_BONUS} Gems!"
    )


class OnboardingService:
    """Сервис регистрации пользователей"""

    @staticmethod
    def build_new_user(
        user_id: str,
        name: str,
        username: Optional[str],
        photo_url: Optional[str],
        referrer_id: Optional[str]
    ) -> User:
        """
        Новый аккаунт с приветственным балансом и нулевыми счётчиками
        """
        return User(
            id=user_id,
            name=name or "",
            username=username or "",
            photo_url=photo_url,
            balance=WELCOME_BONUS,
            gems=0,
            unclaimed_gems=0,
            refs=0,
            ad_watch=0,
            total_ads_watched=0,
            today_income=0,
            total_withdrawn=0,
            referred_by=referrer_id,
            last_claim_date=None,
            claimed_gems_today=0,
            last_ref_date=None,
            daily_ref_count=0,
            daily_vouchers={},
            is_verified=False,
            completed_tasks=[]
        )

    @staticmethod
    async def _referrer_exists(session: AsyncSession, referrer_id: str) -> bool:
        """
        Предварительная проверка реферера; ошибка чтения = реферера нет
        """
        try:
            referrer = await AccountRepository.get(session, referrer_id)
            return referrer is not None
        except SQLAlchemyError as e:
            await session.rollback()
            logger.warning(f"Referrer lookup failed for {referrer_id}: {e}")
            return False

    @staticmethod
    async def _credit_referrer(session: AsyncSession, referrer_id: str, current_date: str) -> bool:
        """
        Награда рефереру и продвижение его суточного реферального цикла
        """
        referrer = await AccountRepository.get(session, referrer_id, for_update=True)
        if referrer is None:
            logger.warning(f"Referrer {referrer_id} not found")
            return False

        referrer.balance = (referrer.balance or 0) + REFERRER_BONUS
        referrer.unclaimed_gems = (referrer.unclaimed_gems or 0) + REFERRER_GEM_BONUS
        referrer.refs = (referrer.refs or 0) + 1

        ref_count = daily_cycle.effective_counter(
            referrer.last_ref_date, referrer.daily_ref_count, current_date
        )
        referrer.daily_vouchers = daily_cycle.effective_vouchers(
            referrer.last_ref_date, referrer.daily_vouchers, current_date
        )
        referrer.daily_ref_count = ref_count + 1
        referrer.last_ref_date = current_date

        return True

    @staticmethod
    async def register_user(
        session: AsyncSession,
        user_id: str,
        name: str,
        username: Optional[str] = None,
        photo_url: Optional[str] = None,
        referrer_id: Optional[str] = None,
        today: Optional[str] = None
    ) -> OnboardingResult:
        """
        Создать пользователя или обновить имя и фото существующего

        Новый аккаунт, запись о приветственном бонусе и награда рефереру
        фиксируются одной транзакцией. Если реферера нет, создаётся только
        сам пользователь.

        Returns:
            OnboardingResult; ошибки записи логируются и не пробрасываются
        """
        current_date = today or daily_cycle.today()

        # referredBy хранит ID из ссылки, награда - только существующему рефереру
        pay_referrer = bool(referrer_id) and await OnboardingService._referrer_exists(session, referrer_id)
        if referrer_id and not pay_referrer:
            logger.info(f"Referral from unknown user {referrer_id} for {user_id}: no reward")

        async def operation(session: AsyncSession) -> OnboardingResult:
            new_user = OnboardingService.build_new_user(
                user_id, name, username, photo_url, referrer_id
            )
            created = await AccountRepository.create_if_absent(session, new_user)

            if not created:
                existing = await AccountRepository.get(session, user_id, for_update=True)
                existing.name = name or existing.name
                if photo_url:
                    existing.photo_url = photo_url
                return OnboardingResult(created=False)

            session.add(Transaction(
                user_id=user_id,
                description=WELCOME_DESCRIPTION,
                amount=WELCOME_BONUS,
                transaction_type="credit"
            ))

            credited = None
            if pay_referrer and await OnboardingService._credit_referrer(session, referrer_id, current_date):
                credited = referrer_id

            return OnboardingResult(created=True, referrer_id=credited)

        try:
            result = await AccountRepository.run_transaction(session, operation)
        except Exception as e:
            logger.error(f"Error during user registration {user_id}: {e}", exc_info=True)
            return OnboardingResult(created=False, failed=True)

        if result.created:
            logger.info(
                f"Created new user {user_id} with welcome bonus {WELCOME_BONUS}"
                + (f", referred by {result.referrer_id}" if result.referrer_id else "")
            )
        else:
            logger.info(f"Updated profile of existing user {user_id}")

        return result
