"""
Telegram Webhook обработчик
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Header

from telegram import Update
from shared.config import TELEGRAM_WEBHOOK_SECRET
from bot_api.bot import get_application

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook/telegram")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None)
):
    """
    Обработка webhook от Telegram
    """
    if TELEGRAM_WEBHOOK_SECRET and not hmac.compare_digest(
        x_telegram_bot_api_secret_token or "", TELEGRAM_WEBHOOK_SECRET
    ):
        logger.warning("Telegram webhook called with invalid secret token")
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        # Получаем тело запроса
        body = await request.json()

        # Создаем Update объект
        application = get_application()
        update = Update.de_json(body, application.bot)

        # Каждый update обрабатывается независимо
        await application.process_update(update)

        return {"status": "ok"}

    except Exception as e:
        logger.error(f"Error processing Telegram webhook: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
