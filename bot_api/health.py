"""
Health check endpoints: хранилище балансов и Redis состояния рассылки
"""
import logging
from typing import Awaitable, Callable, Dict

from fastapi import APIRouter, Response
from sqlalchemy import text

from shared.database import engine
from shared.redis_client import cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


async def _ping_ledger() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _ping_redis() -> None:
    await cache.ping()


PROBES: Dict[str, Callable[[], Awaitable[None]]] = {
    "database": _ping_ledger,
    "redis": _ping_redis,
}


async def _probe(name: str) -> str:
    """Статус одного сервиса: "healthy" или текст ошибки"""
    try:
        await PROBES[name]()
        return "healthy"
    except Exception as e:
        logger.error(f"{name} health check failed: {e}")
        return f"unhealthy: {e}"


@router.get("/")
async def health_check():
    return {
        "status": "healthy",
        "service": "HubCoin Rewards API"
    }


@router.get("/db")
async def health_check_db(response: Response):
    status = await _probe("database")
    if status != "healthy":
        response.status_code = 503
    return {"service": "database", "status": status}


@router.get("/redis")
async def health_check_redis(response: Response):
    """
    Redis нужен только для рассылки; начисления работают без него
    """
    status = await _probe("redis")
    if status != "healthy":
        response.status_code = 503
    return {"service": "redis", "status": status}


@router.get("/all")
async def health_check_all(response: Response):
    services = {name: await _probe(name) for name in PROBES}
    healthy = all(status == "healthy" for status in services.values())

    if not healthy:
        response.status_code = 503

    return {
        "status": "healthy" if healthy else "unhealthy",
        "services": services
    }
