"""
Обработчики команд Telegram бота
"""
import logging
from telegram import Bot, Update
from telegram.ext import ContextTypes
from telegram.helpers import escape_markdown

from shared.database import AsyncSessionLocal
from shared.config import (
    FRONTEND_URL, START_IMAGE_URL, CHANNEL_URL, TUTORIAL_URL, DEFAULT_AVATAR_URL,
    AD_REWARD_AMOUNT, REFERRER_BONUS
)
from shared.notifier import notify_user
from shared.validation import parse_referrer_payload
from bot_api.services.onboarding_service import OnboardingService, referrer_notification_text
from bot_api.bot import create_keyboard, send_message

logger = logging.getLogger(__name__)


async def fetch_photo_url(bot: Bot, user_id: int) -> str:
    """
    URL фото профиля (лучшее качество последнего фото) или аватар по умолчанию
    """
    photo_url = DEFAULT_AVATAR_URL.format(user_id=user_id)
    try:
        photos = await bot.get_user_profile_photos(user_id)
        if photos.total_count > 0:
            file = await bot.get_file(photos.photos[0][-1].file_id)
            photo_url = file.file_path
    except Exception as e:
        logger.info(f"Could not fetch profile photo for user {user_id}: {e}")
    return photo_url


def welcome_caption(first_name: str) -> str:
    return (
        f"🌟 **Welcome to HubCoin, {escape_markdown(first_name or '')}!**\n\n"
        f"Your journey to daily earnings starts now.\n\n"
        f"💰 **How to Earn:**\n"
        f"  - **Watch Ads:** Earn ৳{AD_REWARD_AMOUNT} for each ad.\n"
        f"  - **Refer Friends:** Get ৳{REFERRER_BONUS} for every referral.\n\n"
        f"💸 **Withdrawals:**\n"
        f"  - Easily cash out via bKash, Nagad, or Binance."
    )


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Команда /start с обработкой реферальных ссылок
    """
    user = update.effective_user
    user_id = str(user.id)

    # Извлекаем реферера из /start <id> или /start ref_<id>
    referrer_id = None
    if context.args:
        referrer_id = parse_referrer_payload(context.args[0], user_id)
        logger.info(f"User {user.id} started with referral payload: {context.args[0]}")

    photo_url = await fetch_photo_url(context.bot, user.id)

    async with AsyncSessionLocal() as session:
        result = await OnboardingService.register_user(
            session=session,
            user_id=user_id,
            name=user.first_name,
            username=user.username,
            photo_url=photo_url,
            referrer_id=referrer_id
        )

    # Уведомление рефереру - после фиксации и без влияния на результат
    if result.referrer_id:
        await notify_user(
            result.referrer_id,
            referrer_notification_text(user.first_name),
            send_func=send_message
        )

    keyboard = create_keyboard([
        [{"text": "🚀 Open Mini App", "web_app": FRONTEND_URL}],
        [{"text": "Join Channel", "url": CHANNEL_URL}],
        [{"text": "কিভাবে কাজ করবেন!", "url": TUTORIAL_URL}]
    ])

    await update.message.reply_photo(
        START_IMAGE_URL,
        caption=welcome_caption(user.first_name),
        reply_markup=keyboard,
        parse_mode="Markdown"
    )
