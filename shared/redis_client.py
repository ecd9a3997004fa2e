"""
Redis клиент для состояния рассылки и кэширования
"""
import logging
import json
from typing import Optional, Any
import redis.asyncio as redis

from shared.config import REDIS_URL

logger = logging.getLogger(__name__)

# Глобальный Redis клиент
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """
    Получить Redis клиент
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )
        logger.info("Redis client initialized")

    return _redis_client


async def close_redis():
    """
    Закрыть Redis соединение
    """
    global _redis_client

    if _redis_client:
        await _redis_client.close()
        _redis_client = None
        logger.info("Redis client closed")


class RedisCache:
    """
    Кэш на основе Redis со значениями в JSON
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client

    async def _get_client(self):
        if not self.redis_client:
            self.redis_client = await get_redis()
        return self.redis_client

    @staticmethod
    def _decode(value: Optional[str]) -> Optional[Any]:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def get(self, key: str) -> Optional[Any]:
        """
        Получить значение из кэша
        """
        client = await self._get_client()
        return self._decode(await client.get(key))

    async def pop(self, key: str) -> Optional[Any]:
        """
        Атомарно получить и удалить значение (GETDEL)
        """
        client = await self._get_client()
        return self._decode(await client.getdel(key))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        Установить значение в кэш
        """
        client = await self._get_client()

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        if ttl:
            await client.setex(key, ttl, value)
        else:
            await client.set(key, value)

    async def delete(self, key: str):
        """
        Удалить значение из кэша
        """
        client = await self._get_client()
        await client.delete(key)

    async def ping(self) -> bool:
        client = await self._get_client()
        return await client.ping()


# Кэш
cache = RedisCache()
