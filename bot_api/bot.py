"""
Telegram Bot с обработчиками команд и сообщений
"""
import logging
from typing import Optional

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo
from telegram.ext import Application, CommandHandler, MessageHandler, CallbackQueryHandler, filters

from shared.config import TELEGRAM_BOT_TOKEN, TELEGRAM_WEBHOOK_URL, TELEGRAM_WEBHOOK_SECRET, ADMIN_IDS

logger = logging.getLogger(__name__)

# Глобальный bot instance
_bot: Optional[Bot] = None
_application: Optional[Application] = None


async def setup_bot():
    """
    Настройка бота и webhook
    """
    global _bot, _application

    # Обработчики импортируют helpers из этого модуля
    from bot_api.handlers import commands, callbacks, admin

    # Создаем приложение
    _application = Application.builder().token(TELEGRAM_BOT_TOKEN).build()
    _bot = _application.bot

    # Регистрируем обработчики команд
    _application.add_handler(CommandHandler("start", commands.start_command))

    # Админ-команды
    _application.add_handler(CommandHandler("mailing", admin.mailing_command))

    # Сообщение для рассылки принимается только от админов
    _application.add_handler(MessageHandler(
        filters.User(user_id=ADMIN_IDS) & ~filters.COMMAND,
        admin.handle_admin_message
    ))

    # Регистрируем обработчики callback кнопок
    _application.add_handler(CallbackQueryHandler(callbacks.handle_callback))

    await _application.initialize()

    # Устанавливаем webhook
    if TELEGRAM_WEBHOOK_URL:
        await _bot.set_webhook(
            url=TELEGRAM_WEBHOOK_URL,
            secret_token=TELEGRAM_WEBHOOK_SECRET or None,
            drop_pending_updates=True
        )
        logger.info(f"✅ Webhook set to: {TELEGRAM_WEBHOOK_URL}")
    else:
        logger.warning("⚠️ TELEGRAM_WEBHOOK_URL not set, webhook not configured")

    logger.info("✅ Bot handlers registered")


async def shutdown_bot():
    """
    Остановка бота
    """
    global _bot, _application

    if _bot and TELEGRAM_WEBHOOK_URL:
        await _bot.delete_webhook()
        logger.info("✅ Webhook deleted")

    if _application:
        await _application.shutdown()
        logger.info("✅ Bot application shutdown")

    _bot = None
    _application = None


def get_bot() -> Bot:
    """
    Получить bot instance
    """
    if not _bot:
        raise RuntimeError("Bot not initialized. Call setup_bot() first.")
    return _bot


def get_application() -> Application:
    """
    Получить application instance
    """
    if not _application:
        raise RuntimeError("Application not initialized. Call setup_bot() first.")
    return _application


# ========== Вспомогательные функции ==========

async def send_message(user_id, text: str, **kwargs):
    """
    Отправить сообщение пользователю
    """
    bot = get_bot()
    await bot.send_message(chat_id=int(user_id), text=text, **kwargs)


async def copy_message(user_id, from_chat_id: int, message_id: int):
    """
    Скопировать сообщение (любого типа) пользователю
    """
    bot = get_bot()
    await bot.copy_message(chat_id=int(user_id), from_chat_id=from_chat_id, message_id=message_id)


def create_keyboard(buttons: list[list[dict]]) -> InlineKeyboardMarkup:
    """
    Создать inline клавиатуру

    Args:
        buttons: Список рядов кнопок, каждая кнопка - dict с 'text' и одним из
            'callback_data', 'url' или 'web_app' (URL Mini App)

    Example:
        buttons = [
            [{"text": "🚀 Open Mini App", "web_app": "https://app.example.com"}],
            [{"text": "✅ Send", "callback_data": "confirm_broadcast"}]
        ]
    """
    keyboard = []
    for row in buttons:
        keyboard_row = []
        for btn in row:
            web_app = WebAppInfo(url=btn["web_app"]) if btn.get("web_app") else None
            keyboard_row.append(
                InlineKeyboardButton(
                    text=btn["text"],
                    callback_data=btn.get("callback_data"),
                    url=btn.get("url"),
                    web_app=web_app
                )
            )
        keyboard.append(keyboard_row)

    return InlineKeyboardMarkup(keyboard)
