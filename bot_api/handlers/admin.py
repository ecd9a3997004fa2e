"""
Рассылка администратора с подтверждением
"""
import logging
from telegram import Update
from telegram.ext import ContextTypes

from shared.database import AsyncSessionLocal
from shared.config import ADMIN_IDS
from bot_api.services.mailing_service import (
    BroadcastService, InvalidMailingTransition, MailingStep, mailing_state
)
from bot_api.bot import create_keyboard, copy_message

logger = logging.getLogger(__name__)


def is_admin(user_id: int) -> bool:
    """Проверка, является ли пользователь админом"""
    return user_id in ADMIN_IDS


async def mailing_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Команда /mailing - шаг 1: ждём сообщение для рассылки
    """
    user_id = update.effective_user.id

    if not is_admin(user_id):
        await update.message.reply_text("Sorry, you are not authorized to use this command.")
        return

    await mailing_state.start(user_id)

    await update.message.reply_text("❇️ Send the message you want to broadcast to all users.")


async def handle_admin_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Шаг 2: сообщение админа становится черновиком рассылки
    """
    user_id = update.effective_user.id

    if not is_admin(user_id):
        return

    if await mailing_state.get_step(user_id) != MailingStep.AWAITING_MESSAGE:
        return

    message = update.effective_message
    try:
        draft = await mailing_state.capture(user_id, message.chat_id, message.message_id)
    except InvalidMailingTransition as e:
        logger.warning(f"Mailing capture rejected for admin {user_id}: {e}")
        return

    await message.reply_text("❇️ Please check the message below and confirm the broadcast...")

    # Показываем админу точную копию
    await context.bot.copy_message(
        chat_id=draft.chat_id,
        from_chat_id=draft.chat_id,
        message_id=draft.message_id
    )

    keyboard = create_keyboard([
        [
            {"text": "✅ Send", "callback_data": "confirm_broadcast"},
            {"text": "❌ Cancel", "callback_data": "cancel_broadcast"}
        ]
    ])

    await message.reply_text("Are you sure you want to send this to all users?", reply_markup=keyboard)


async def handle_cancel_broadcast(query, context):
    """
    Шаг 3: отмена
    """
    user_id = query.from_user.id
    if not is_admin(user_id):
        return

    await mailing_state.cancel(user_id)
    await query.edit_message_text("Mailing cancelled.")


async def handle_confirm_broadcast(query, context):
    """
    Шаг 3: подтверждение и рассылка
    """
    user_id = query.from_user.id
    if not is_admin(user_id):
        return

    try:
        draft = await mailing_state.confirm(user_id)
    except InvalidMailingTransition:
        await query.edit_message_text("Something went wrong. Please start over with /mailing.")
        return

    await query.edit_message_text("Broadcast started... I will send you a report when finished.")

    try:
        async with AsyncSessionLocal() as session:
            success_count, failure_count = await BroadcastService.broadcast(
                session, draft, copy_message
            )
    except Exception as e:
        logger.error(f"Broadcast error: {e}", exc_info=True)
        await query.message.reply_text("An error occurred during the broadcast.")
        return

    if success_count == 0 and failure_count == 0:
        await query.message.reply_text("No users found in the database.")
        return

    await query.message.reply_text(
        f"Broadcast finished.\n"
        f"✅ Successfully sent to: {success_count} users.\n"
        f"❌ Failed to send to: {failure_count} users."
    )
