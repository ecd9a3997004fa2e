"""
HTTP клиент партнёрского сервиса (проверка баланса для задания Pocket Money)
"""
import logging
import math
from typing import Optional

import httpx

from shared.config import PARTNER_API_URL, PARTNER_API_KEY, PARTNER_API_TIMEOUT
from shared.errors import VerificationUnavailable

logger = logging.getLogger(__name__)


class PartnerClient:
    """Клиент партнёрского API"""

    _BALANCE_PATH = "/users/{user_id}/balance"

    def __init__(
        self,
        base_url: str = PARTNER_API_URL,
        api_key: str = PARTNER_API_KEY,
        timeout: float = PARTNER_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

    async def get_balance(self, user_id: str) -> float:
        """
        Баланс пользователя в партнёрской системе

        Raises:
            VerificationUnavailable: сервис не настроен, недоступен или ответил ошибкой
        """
        if not self._base_url:
            logger.error("PARTNER_API_URL is not configured")
            raise VerificationUnavailable()

        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport
            ) as client:
                response = await client.get(
                    self._BALANCE_PATH.format(user_id=user_id), headers=headers
                )
            response.raise_for_status()
            payload = response.json()
            balance = float(payload["balance"])

        except httpx.TimeoutException as exc:
            logger.warning(f"Partner API timeout for user {user_id}")
            raise VerificationUnavailable() from exc
        except httpx.HTTPError as exc:
            logger.warning(f"Partner API error for user {user_id}: {exc}")
            raise VerificationUnavailable() from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error(f"Unexpected partner API response for user {user_id}: {exc}")
            raise VerificationUnavailable() from exc

        # NaN/inf прошли бы сравнение с порогом
        if not math.isfinite(balance):
            logger.error(f"Non-finite partner balance for user {user_id}: {payload['balance']!r}")
            raise VerificationUnavailable()

        return balance
