"""
Конфигурация приложения
"""
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

# Базовые пути
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# Telegram
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_WEBHOOK_URL = os.getenv("TELEGRAM_WEBHOOK_URL", "")  # https://your-domain.com/webhook/telegram
TELEGRAM_WEBHOOK_SECRET = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")

# Mini App
FRONTEND_URL = os.getenv("FRONTEND_URL", "")
START_IMAGE_URL = os.getenv("START_IMAGE_URL", "https://i.postimg.cc/J4YSvR0M/start-image.png")
CHANNEL_URL = os.getenv("CHANNEL_URL", "https://t.me/HubCoin_miner")
TUTORIAL_URL = os.getenv("TUTORIAL_URL", "https://youtube.com/@hubcoin_miner")
DEFAULT_AVATAR_URL = "https://i.pravatar.cc/150?u={user_id}"

# PostgreSQL
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost/hubcoin")
# Railway автоматически предоставляет DATABASE_URL

# Количество попыток оптимистичной транзакции при конфликте версий
LEDGER_TXN_MAX_ATTEMPTS = int(os.getenv("LEDGER_TXN_MAX_ATTEMPTS", "5"))

# Redis
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Награды
WELCOME_BONUS = int(os.getenv("WELCOME_BONUS", "25"))  # баланс нового пользователя
REFERRER_BONUS = int(os.getenv("REFERRER_BONUS", "25"))  # баланс рефереру
REFERRER_GEM_BONUS = int(os.getenv("REFERRER_GEM_BONUS", "2"))  # unclaimedGems рефереру
DAILY_GEM_CLAIM_LIMIT = 6  # максимум гемов, переводимых в день

# Реклама
AD_REWARD_AMOUNT = int(os.getenv("AD_REWARD_AMOUNT", "15"))
AD_REWARD_FIELD = os.getenv("AD_REWARD_FIELD", "balance")  # balance или gems

if AD_REWARD_FIELD not in ("balance", "gems"):
    raise ValueError(f"AD_REWARD_FIELD must be 'balance' or 'gems', got {AD_REWARD_FIELD!r}")

# Реферальные ваучеры: тир -> (рефералов за день, гемов)
VOUCHER_TIERS = {
    "v9": {"threshold": 9, "reward": 10},
    "v19": {"threshold": 19, "reward": 25},
}

# Партнёрский сервис (задание Pocket Money)
PARTNER_API_URL = os.getenv("PARTNER_API_URL", "")
PARTNER_API_KEY = os.getenv("PARTNER_API_KEY", "")
PARTNER_API_TIMEOUT = float(os.getenv("PARTNER_API_TIMEOUT", "10"))
POCKET_MONEY_MIN_BALANCE = int(os.getenv("POCKET_MONEY_MIN_BALANCE", "200"))
POCKET_MONEY_REWARD_GEMS = int(os.getenv("POCKET_MONEY_REWARD_GEMS", "10"))

# Верификация человека
HUMAN_VERIFICATION_TASK_ID = "verify_human"
HUMAN_VERIFICATION_FIELDS = ("name", "age", "district")

# Рассылка
BROADCAST_CONCURRENCY = int(os.getenv("BROADCAST_CONCURRENCY", "20"))
MAILING_STATE_TTL = 3600  # секунды

# Администраторы (список Telegram ID)
ADMIN_IDS_STR = os.getenv("ADMIN_IDS", os.getenv("ADMIN_USER_ID", ""))  # Через запятую: "123456789,987654321"
ADMIN_IDS: List[int] = [int(id.strip()) for id in ADMIN_IDS_STR.split(",") if id.strip()]

# Валидация ADMIN_IDS
if not ADMIN_IDS:
    import sys
    print("⚠️ WARNING: ADMIN_IDS is empty! Mailing will be inaccessible.")
    print("🔧 Set ADMIN_IDS environment variable: ADMIN_IDS='123456789,987654321'")
    if os.getenv("REQUIRE_ADMIN_IDS", "false").lower() == "true":
        print("❌ REQUIRE_ADMIN_IDS=true, exiting...")
        sys.exit(1)

# API Server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "3000"))

# Логирование
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Создание директорий
DATA_DIR.mkdir(exist_ok=True)
(DATA_DIR / "logs").mkdir(exist_ok=True)
