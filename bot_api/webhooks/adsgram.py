"""
Колбэк рекламной сети о просмотренной рекламе
Без подписи запроса: ID пользователя приходит в query параметре
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import get_session
from shared.errors import InputInvalid, InternalFailure, NotFound
from shared.validation import normalize_user_id
from bot_api.services.balance_service import BalanceService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/adsgram-reward")
@router.get("/api/grant-reward-firestore")
async def ad_reward_webhook(
    userid: Optional[str] = Query(default=None),
    rewardid: Optional[str] = Query(default=None),
    reward_id: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_session)
):
    """
    Начисление награды за рекламу

    rewardid / reward_id - необязательный ID показа от сети; повтор с тем же ID
    ничего не начисляет.
    """
    try:
        user_id = normalize_user_id(userid)
    except InputInvalid as e:
        logger.warning(f"Ad reward callback rejected: {e.message}")
        return JSONResponse(status_code=400, content={"success": False, "message": e.message})

    try:
        granted = await BalanceService.grant_ad_reward(session, user_id, reward_id=rewardid or reward_id)
    except NotFound as e:
        return JSONResponse(status_code=404, content={"success": False, "message": e.message})
    except (SQLAlchemyError, InternalFailure) as e:
        logger.error(f"Error granting ad reward to user {user_id}: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to grant reward."}
        )

    if not granted:
        return {"success": True, "message": "Reward already granted."}

    return {"success": True, "message": "Reward granted."}
