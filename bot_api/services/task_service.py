"""
Проверка выполнения заданий: через партнёрский сервис и локальная верификация
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import (
    POCKET_MONEY_MIN_BALANCE,
    POCKET_MONEY_REWARD_GEMS,
    HUMAN_VERIFICATION_TASK_ID,
    HUMAN_VERIFICATION_FIELDS
)
from shared.errors import InputInvalid, NotFound, NotQualified, AlreadyVerified
from shared.validation import validate_required_fields
from bot_api.services.account_repository import AccountRepository
from bot_api.services.partner_client import PartnerClient

logger = logging.getLogger(__name__)


@dataclass
class TaskResult:
    """Итог проверки задания"""
    gems_granted: int
    already_completed: bool = False


def _format_amount(value: float):
    return int(value) if float(value).is_integer() else value


class TaskService:
    """Сервис заданий"""

    @staticmethod
    async def verify_partner_task(
        session: AsyncSession,
        user_id: str,
        task_id: Optional[str],
        payload: Optional[Dict[str, Any]] = None,
        partner: Optional[PartnerClient] = None
    ) -> TaskResult:
        """
        Проверить задание через партнёрский сервис и начислить гемы один раз

        Внешний запрос выполняется вне транзакции; перед записью
        задание проверяется повторно под блокировкой строки.

        Raises:
            InputInvalid, NotFound, VerificationUnavailable, NotQualified
        """
        if not task_id:
            raise InputInvalid("Task ID is required.")

        user = await AccountRepository.get(session, user_id)
        if user is None:
            raise NotFound()
        already_completed = task_id in user.tasks()
        # Не держим транзакцию открытой на время внешнего запроса
        await session.rollback()

        if already_completed:
            logger.info(f"Task {task_id} already completed by user {user_id}")
            return TaskResult(gems_granted=0, already_completed=True)

        if payload:
            logger.debug(f"Task {task_id} payload from user {user_id}: {payload}")

        partner = partner or PartnerClient()
        observed = await partner.get_balance(user_id)

        if observed < POCKET_MONEY_MIN_BALANCE:
            logger.info(
                f"User {user_id} not qualified for task {task_id}: "
                f"balance={observed}, required={POCKET_MONEY_MIN_BALANCE}"
            )
            raise NotQualified(_format_amount(observed), POCKET_MONEY_MIN_BALANCE)

        async def operation(session: AsyncSession) -> TaskResult:
            user = await AccountRepository.get(session, user_id, for_update=True)
            if user is None:
                raise NotFound()

            if not AccountRepository.append_to_set(user, "completed_tasks", task_id):
                return TaskResult(gems_granted=0, already_completed=True)

            user.gems = (user.gems or 0) + POCKET_MONEY_REWARD_GEMS
            return TaskResult(gems_granted=POCKET_MONEY_REWARD_GEMS)

        result = await AccountRepository.run_transaction(session, operation)

        if result.gems_granted:
            logger.info(f"User {user_id} completed task {task_id}: +{result.gems_granted} gems")

        return result

    @staticmethod
    async def verify_human(session: AsyncSession, user_id: str, data: Dict[str, Any]) -> None:
        """
        Локальная верификация: сохранить анкету и отметить пользователя

        Raises:
            InputInvalid, NotFound, AlreadyVerified
        """
        valid, error = validate_required_fields(data, HUMAN_VERIFICATION_FIELDS)
        if not valid:
            raise InputInvalid(error)

        verification_data = {field: data[field] for field in HUMAN_VERIFICATION_FIELDS}

        async def operation(session: AsyncSession) -> None:
            user = await AccountRepository.get(session, user_id, for_update=True)
            if user is None:
                raise NotFound()

            if user.verified():
                raise AlreadyVerified()

            user.is_verified = True
            user.verification_data = verification_data
            AccountRepository.append_to_set(user, "completed_tasks", HUMAN_VERIFICATION_TASK_ID)

        await AccountRepository.run_transaction(session, operation)

        logger.info(f"User {user_id} verified as human")
