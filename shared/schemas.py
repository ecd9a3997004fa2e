"""
Pydantic схемы: снимок аккаунта и тела запросов Mini App
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.database import User


class AccountSnapshot(BaseModel):
    """Аккаунт с подставленными значениями по умолчанию"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    username: str = ""
    photo_url: Optional[str] = Field(default=None, alias="photoUrl")
    balance: int = 0
    gems: int = 0
    unclaimed_gems: int = Field(default=0, alias="unclaimedGems")
    refs: int = 0
    ad_watch: int = Field(default=0, alias="adWatch")
    total_ads_watched: int = Field(default=0, alias="totalAdsWatched")
    today_income: int = Field(default=0, alias="todayIncome")
    total_withdrawn: int = Field(default=0, alias="totalWithdrawn")
    last_claim_date: Optional[str] = Field(default=None, alias="lastClaimDate")
    claimed_gems_today: int = Field(default=0, alias="claimedGemsToday")
    last_ref_date: Optional[str] = Field(default=None, alias="lastRefDate")
    daily_ref_count: int = Field(default=0, alias="dailyRefCount")
    daily_vouchers: Dict[str, bool] = Field(default_factory=dict, alias="dailyVouchers")
    referred_by: Optional[str] = Field(default=None, alias="referredBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    is_verified: bool = Field(default=False, alias="isVerified")
    completed_tasks: List[str] = Field(default_factory=list, alias="completedTasks")

    @classmethod
    def from_user(cls, user: User) -> "AccountSnapshot":
        raw = {
            "id": user.id,
            "name": user.name,
            "username": user.username,
            "photo_url": user.photo_url,
            "balance": user.balance,
            "gems": user.gems,
            "unclaimed_gems": user.unclaimed_gems,
            "refs": user.refs,
            "ad_watch": user.ad_watch,
            "total_ads_watched": user.total_ads_watched,
            "today_income": user.today_income,
            "total_withdrawn": user.total_withdrawn,
            "last_claim_date": user.last_claim_date,
            "claimed_gems_today": user.claimed_gems_today,
            "last_ref_date": user.last_ref_date,
            "daily_ref_count": user.daily_ref_count,
            "daily_vouchers": user.daily_vouchers,
            "referred_by": user.referred_by,
            "created_at": user.created_at,
            "is_verified": user.is_verified,
            "completed_tasks": user.completed_tasks,
        }
        # NULL в старых записях -> значение по умолчанию
        return cls(**{key: value for key, value in raw.items() if value is not None})


# ========== Запросы ==========

UserIdField = Optional[Union[int, str]]


class UserRequest(BaseModel):
    user_id: UserIdField = Field(default=None, alias="userId")


class VoucherClaimRequest(UserRequest):
    voucher_type: Optional[str] = Field(default=None, alias="voucherType")


class TaskVerificationRequest(UserRequest):
    model_config = ConfigDict(extra="allow")

    task_id: Optional[str] = Field(default=None, alias="taskId")

    def payload(self) -> Dict[str, Any]:
        """Дополнительные поля задания"""
        return dict(self.model_extra or {})


class HumanVerificationRequest(UserRequest):
    name: Optional[str] = None
    age: Optional[Union[int, str]] = None
    district: Optional[str] = None
