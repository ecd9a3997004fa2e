"""
API для Mini App: получение гемов, баланс, задания, реферальные ваучеры
"""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import get_session
from shared.errors import (
    InputInvalid, NotFound, BusinessRuleViolation, VerificationUnavailable
)
from shared.schemas import (
    UserRequest, VoucherClaimRequest, TaskVerificationRequest, HumanVerificationRequest
)
from shared.validation import normalize_user_id
from bot_api.services.balance_service import BalanceService
from bot_api.services.task_service import TaskService
from bot_api.services.voucher_service import VoucherService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["miniapp"])


def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


@router.post("/claim-gems")
async def claim_gems(request: UserRequest, session: AsyncSession = Depends(get_session)):
    """
    Перевести накопленные гемы (не более 6 в день)
    """
    try:
        user_id = normalize_user_id(request.user_id)
        claimed = await BalanceService.claim_gems(session, user_id)
    except (InputInvalid, NotFound, BusinessRuleViolation) as e:
        logger.warning(f"Error claiming gems for user {request.user_id}: {e.message}")
        return JSONResponse(status_code=400, content={"message": e.message})

    return {"message": "Gems claimed successfully!", "claimed": claimed}


@router.post("/api/check-balance")
async def check_balance(request: UserRequest, session: AsyncSession = Depends(get_session)):
    """
    Текущий баланс пользователя
    """
    try:
        user_id = normalize_user_id(request.user_id)
        account = await BalanceService.get_account_snapshot(session, user_id)
    except InputInvalid as e:
        return _failure(400, e.message)
    except NotFound as e:
        return _failure(404, e.message)

    return {
        "success": True,
        "balance": account.balance,
        "gems": account.gems,
        "unclaimedGems": account.unclaimed_gems
    }


@router.post("/verify-pocket-money")
async def verify_pocket_money(request: TaskVerificationRequest, session: AsyncSession = Depends(get_session)):
    """
    Задание партнёра: проверка баланса во внешнем сервисе

    Невыполненное условие - не HTTP ошибка, а success=false.
    """
    try:
        user_id = normalize_user_id(request.user_id)
        result = await TaskService.verify_partner_task(
            session, user_id, request.task_id, payload=request.payload()
        )
    except InputInvalid as e:
        return _failure(400, e.message)
    except NotFound as e:
        return _failure(404, e.message)
    except VerificationUnavailable as e:
        return _failure(503, e.message)
    except BusinessRuleViolation as e:
        return {"success": False, "message": e.message}

    if result.already_completed:
        return {"success": True, "alreadyCompleted": True, "message": "Task already completed."}

    return {
        "success": True,
        "message": f"Task verified! You received {result.gems_granted} gems.",
        "gems": result.gems_granted
    }


@router.post("/api/verify-human")
async def verify_human(request: HumanVerificationRequest, session: AsyncSession = Depends(get_session)):
    """
    Анкета верификации (имя, возраст, район)
    """
    try:
        user_id = normalize_user_id(request.user_id)
        await TaskService.verify_human(
            session, user_id, request.model_dump(include={"name", "age", "district"})
        )
    except NotFound as e:
        return _failure(404, e.message)
    except (InputInvalid, BusinessRuleViolation) as e:
        return _failure(400, e.message)

    return {"success": True, "message": "Verification successful."}


@router.post("/api/claim-ref-voucher")
async def claim_ref_voucher(request: VoucherClaimRequest, session: AsyncSession = Depends(get_session)):
    """
    Ваучер за сегодняшних рефералов (v9, v19)
    """
    try:
        user_id = normalize_user_id(request.user_id)
        reward = await VoucherService.claim_voucher(session, user_id, request.voucher_type)
    except (InputInvalid, NotFound, BusinessRuleViolation) as e:
        logger.info(f"Voucher {request.voucher_type} rejected for user {request.user_id}: {e.message}")
        return _failure(400, e.message)

    return {
        "success": True,
        "message": f"Voucher claimed! You received {reward} gems.",
        "gems": reward
    }
