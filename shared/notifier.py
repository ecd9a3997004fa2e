"""
Доставка сообщений пользователям по принципу best effort
Ошибки отправки логируются и никогда не пробрасываются в вызывающий код
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def notify_user(user_id, text: str, send_func=None) -> bool:
    """
    Отправить уведомление пользователю

    Args:
        user_id: Telegram ID получателя
        text: Текст уведомления
        send_func: Функция для отправки сообщения (async callable)

    Returns:
        True если сообщение доставлено
    """
    if send_func is None:
        logger.warning("send_func not provided, cannot send notification")
        return False

    try:
        await send_func(user_id, text)
        logger.info(f"Notification sent to user {user_id}")
        return True
    except Exception as e:
        logger.error(f"Failed to notify user {user_id}: {e}")
        return False


async def fan_out(
    recipients: Iterable[T],
    send_func: Callable[[T], Awaitable[object]],
    concurrency: int = 20
) -> Tuple[int, int]:
    """
    Разослать сообщение всем получателям параллельно

    Порядок завершения не важен; ошибка одного получателя
    не прерывает отправку остальным.

    Returns:
        (success_count, failed_count)
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def deliver(recipient: T) -> bool:
        async with semaphore:
            try:
                await send_func(recipient)
                return True
            except Exception as e:
                logger.warning(f"Failed to send to {recipient}: {e}")
                return False

    results = await asyncio.gather(*(deliver(recipient) for recipient in recipients))

    success_count = sum(1 for delivered in results if delivered)
    failed_count = len(results) - success_count

    logger.info(f"Fan-out finished: {success_count} success, {failed_count} failed")

    return success_count, failed_count
