"""
Рассылка администратора: состояние по каждому админу в Redis и fan-out по всем пользователям

Состояния: idle -> awaiting_message -> awaiting_confirmation -> idle
"""
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import BROADCAST_CONCURRENCY, MAILING_STATE_TTL
from shared.notifier import fan_out
from shared.redis_client import RedisCache, cache
from bot_api.services.account_repository import AccountRepository

logger = logging.getLogger(__name__)


class MailingStep(str, enum.Enum):
    """Шаги рассылки"""
    IDLE = "idle"
    AWAITING_MESSAGE = "awaiting_message"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class InvalidMailingTransition(Exception):
    """Переход недопустим из текущего состояния"""

    def __init__(self, current: MailingStep, action: str):
        super().__init__(f"Cannot {action} while mailing is {current.value}")
        self.current = current
        self.action = action


@dataclass
class MailingDraft:
    """Сообщение, которое будет скопировано всем пользователям"""
    chat_id: int
    message_id: int


class MailingStateStore:
    """Машина состояний рассылки, ключ - ID админа"""

    def __init__(self, store: RedisCache = cache, ttl: int = MAILING_STATE_TTL):
        self.store = store
        self.ttl = ttl

    @staticmethod
    def _key(admin_id: int) -> str:
        return f"mailing:{admin_id}"

    async def get_step(self, admin_id: int) -> MailingStep:
        state = await self.store.get(self._key(admin_id))
        if not state:
            return MailingStep.IDLE
        return MailingStep(state["step"])

    async def start(self, admin_id: int) -> None:
        """
        Начать рассылку (из любого состояния, незавершённая рассылка сбрасывается)
        """
        await self.store.set(
            self._key(admin_id),
            {"step": MailingStep.AWAITING_MESSAGE.value},
            ttl=self.ttl
        )
        logger.info(f"Admin {admin_id} started mailing")

    async def capture(self, admin_id: int, chat_id: int, message_id: int) -> MailingDraft:
        """
        Запомнить сообщение для рассылки и перейти к подтверждению
        """
        current = await self.get_step(admin_id)
        if current != MailingStep.AWAITING_MESSAGE:
            raise InvalidMailingTransition(current, "capture a message")

        await self.store.set(
            self._key(admin_id),
            {
                "step": MailingStep.AWAITING_CONFIRMATION.value,
                "chat_id": chat_id,
                "message_id": message_id
            },
            ttl=self.ttl
        )
        return MailingDraft(chat_id=chat_id, message_id=message_id)

    async def confirm(self, admin_id: int) -> MailingDraft:
        """
        Подтвердить рассылку: атомарно забрать черновик и вернуться в idle

        Повторное нажатие "Send" не найдёт черновик и не отправит второй раз.
        """
        state = await self.store.pop(self._key(admin_id))
        if not state or state.get("step") != MailingStep.AWAITING_CONFIRMATION.value:
            if state:
                # Кнопка из старого сообщения - состояние не трогаем
                await self.store.set(self._key(admin_id), state, ttl=self.ttl)
            current = MailingStep(state["step"]) if state else MailingStep.IDLE
            raise InvalidMailingTransition(current, "confirm")

        logger.info(f"Admin {admin_id} confirmed mailing")
        return MailingDraft(chat_id=state["chat_id"], message_id=state["message_id"])

    async def cancel(self, admin_id: int) -> None:
        await self.store.delete(self._key(admin_id))
        logger.info(f"Admin {admin_id} cancelled mailing")


class BroadcastService:
    """Рассылка черновика всем пользователям"""

    @staticmethod
    async def broadcast(
        session: AsyncSession,
        draft: MailingDraft,
        copy_func: Callable[[str, int, int], Awaitable[object]],
        concurrency: int = BROADCAST_CONCURRENCY
    ) -> Tuple[int, int]:
        """
        Скопировать сообщение каждому пользователю

        Returns:
            (success_count, failed_count)
        """
        user_ids = await AccountRepository.list_user_ids(session)
        # Список уже прочитан, транзакцию на время рассылки не держим
        await session.rollback()

        if not user_ids:
            logger.info("Broadcast skipped: no users")
            return 0, 0

        logger.info(f"📢 Broadcasting message {draft.message_id} to {len(user_ids)} users")

        return await fan_out(
            user_ids,
            lambda user_id: copy_func(user_id, draft.chat_id, draft.message_id),
            concurrency=concurrency
        )


mailing_state = MailingStateStore()
