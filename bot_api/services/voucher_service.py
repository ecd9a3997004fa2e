"""
Реферальные ваучеры: бонус гемов за 9 и 19 рефералов в день
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shared import daily_cycle
from shared.config import VOUCHER_TIERS
from shared.errors import (
    InputInvalid, NotFound, NoReferralDataToday, ThresholdNotMet, AlreadyClaimed
)
from bot_api.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)


class VoucherService:
    """Сервис реферальных ваучеров"""

    @staticmethod
    async def claim_voucher(
        session: AsyncSession,
        user_id: str,
        voucher_type: str,
        today: Optional[str] = None
    ) -> int:
        """
        Получить ваучер тира voucher_type за сегодняшних рефералов

        Returns:
            Начисленные гемы

        Raises:
            InputInvalid, NotFound, NoReferralDataToday, ThresholdNotMet, AlreadyClaimed
        """
        tier = VOUCHER_TIERS.get(voucher_type)
        if tier is None:
            raise InputInvalid(f"Invalid voucher type: {voucher_type}")

        current_date = today or daily_cycle.today()

        async def operation(session: AsyncSession) -> int:
            user = await AccountRepository.get(session, user_id, for_update=True)
            if user is None:
                raise NotFound()

            if user.last_ref_date != current_date:
                raise NoReferralDataToday()

            ref_count = daily_cycle.effective_counter(
                user.last_ref_date, user.daily_ref_count, current_date
            )
            if ref_count < tier["threshold"]:
                raise ThresholdNotMet(tier["threshold"], ref_count)

            vouchers = daily_cycle.effective_vouchers(
                user.last_ref_date, user.daily_vouchers, current_date
            )
            if vouchers[voucher_type]:
                raise AlreadyClaimed()

            vouchers[voucher_type] = True
            user.daily_vouchers = vouchers
            user.gems = (user.gems or 0) + tier["reward"]

            return tier["reward"]

        reward = await AccountRepository.run_transaction(session, operation)

        logger.info(f"User {user_id} claimed voucher {voucher_type}: +{reward} gems")

        return reward
