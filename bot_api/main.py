"""
FastAPI приложение для Bot API
Обрабатывает Telegram webhook, колбэки рекламной сети и запросы Mini App
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.database import init_db, close_db
from shared.redis_client import close_redis
from shared.config import LOG_LEVEL, LOG_FORMAT, DATA_DIR, FRONTEND_URL
from bot_api.webhooks.telegram import router as telegram_router
from bot_api.webhooks.adsgram import router as adsgram_router
from bot_api.miniapp import router as miniapp_router
from bot_api.health import router as health_router
from bot_api.bot import setup_bot, shutdown_bot

# Настройка логирования
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    handlers=[
        logging.FileHandler(DATA_DIR / "logs" / "bot_api.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager для FastAPI
    """
    # Startup
    logger.info("🚀 Starting Bot API...")

    # Без базы данных сервис работать не может
    try:
        await init_db()
    except Exception as e:
        logger.critical(f"❌ Could not connect to the database: {e}", exc_info=True)
        raise SystemExit(1)
    logger.info("✅ Database initialized")

    # Настройка бота
    try:
        await setup_bot()
        logger.info("✅ Bot configured")
    except Exception as e:
        logger.error(f"⚠️ Bot setup failed, chat commands unavailable: {e}", exc_info=True)

    yield

    # Shutdown
    logger.info("🛑 Shutting down Bot API...")
    await shutdown_bot()
    await close_db()
    await close_redis()
    logger.info("✅ Bot API stopped")


# Создание FastAPI приложения
app = FastAPI(
    title="HubCoin Rewards API",
    description="Telegram bot and Mini App rewards ledger",
    version="1.0.0",
    lifespan=lifespan
)

# Запросы разрешены только с фронтенда Mini App
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL] if FRONTEND_URL else [],
    allow_methods=["GET", "POST"],
    allow_headers=["*"]
)


# Подключение роутеров
app.include_router(health_router)
app.include_router(telegram_router)
app.include_router(adsgram_router)
app.include_router(miniapp_router)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "HubCoin Rewards API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик ошибок
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def main():
    import uvicorn
    from shared.config import API_HOST, API_PORT

    uvicorn.run(
        "bot_api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=False,
        log_level=LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
