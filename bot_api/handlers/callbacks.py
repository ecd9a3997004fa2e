"""
Обработчики callback кнопок (подтверждение рассылки)
"""
import logging
from telegram import Update
from telegram.ext import ContextTypes

from bot_api.handlers.admin import handle_cancel_broadcast, handle_confirm_broadcast

logger = logging.getLogger(__name__)


CALLBACK_ROUTES = {
    "confirm_broadcast": handle_confirm_broadcast,
    "cancel_broadcast": handle_cancel_broadcast,
}


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Маршрутизация callback_data к обработчику
    """
    query = update.callback_query
    await query.answer()

    handler = CALLBACK_ROUTES.get(query.data)
    if handler is None:
        logger.warning(f"Unknown callback from user {update.effective_user.id}: {query.data}")
        return

    await handler(query, context)
