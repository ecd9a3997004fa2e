"""
Суточные окна: счётчик действует только в пределах даты, на которую он записан
"""
from datetime import date
from typing import Dict, Mapping, Optional

from shared.config import VOUCHER_TIERS


def today() -> str:
    """Текущая дата сервера в формате YYYY-MM-DD"""
    return date.today().isoformat()


def effective_counter(last_date: Optional[str], counter: Optional[int], current_date: str) -> int:
    """
    Значение счётчика на current_date.
    Если счётчик записан за другую дату, он считается нулевым.
    """
    if last_date != current_date:
        return 0
    return counter or 0


def effective_vouchers(
    last_date: Optional[str],
    vouchers: Optional[Mapping[str, bool]],
    current_date: str
) -> Dict[str, bool]:
    """
    Состояние ваучеров на current_date, с False для каждого тира по умолчанию.
    Карта за прошлую дату не переиспользуется.
    """
    result = {tier: False for tier in VOUCHER_TIERS}
    if last_date == current_date and vouchers:
        for tier, claimed in vouchers.items():
            result[tier] = bool(claimed)
    return result
