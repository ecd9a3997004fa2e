"""
Утилиты для валидации входных данных
"""
import logging
from typing import Any, Iterable, Mapping, Optional, Tuple

from shared.errors import InputInvalid

logger = logging.getLogger(__name__)

# Префикс реферального кода в /start ref_<telegram_id>
REFERRAL_PREFIX = "ref_"


def normalize_user_id(value: Any) -> str:
    """
    Привести ID пользователя к строке из цифр

    Raises:
        InputInvalid: ID отсутствует или не является целым числом
    """
    if value is None or isinstance(value, bool):
        raise InputInvalid("User ID is required.")

    user_id = str(value).strip()
    if not user_id:
        raise InputInvalid("User ID is required.")

    if not user_id.isdigit():
        raise InputInvalid(f"Invalid user ID: {user_id}")

    # "007" и "7" - один и тот же пользователь
    return str(int(user_id))


def parse_referrer_payload(payload: Optional[str], user_id: str) -> Optional[str]:
    """
    Извлечь ID реферера из payload команды /start

    Принимает "ref_<id>" и "<id>". Возвращает None для пустого или
    некорректного payload и для попытки пригласить самого себя.
    """
    if not payload:
        return None

    raw = payload.strip()
    if raw.startswith(REFERRAL_PREFIX):
        raw = raw[len(REFERRAL_PREFIX):]

    try:
        referrer_id = normalize_user_id(raw)
    except InputInvalid:
        logger.warning(f"Invalid referrer payload: {payload}")
        return None

    if referrer_id == user_id:
        logger.warning(f"User {user_id} tried to refer themselves")
        return None

    return referrer_id


def validate_required_fields(data: Mapping[str, Any], fields: Iterable[str]) -> Tuple[bool, str]:
    """
    Проверить, что все обязательные поля заполнены

    Returns:
        (valid, error_message)
    """
    missing = [
        field for field in fields
        if data.get(field) is None or (isinstance(data.get(field), str) and not data[field].strip())
    ]

    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"

    return True, ""
