import pytest
from sqlalchemy.orm.exc import StaleDataError

from shared.database import User
from shared.errors import InternalFailure, NotFound
from bot_api.services.account_repository import AccountRepository
from bot_api.services.onboarding_service import OnboardingService


def _new_user(user_id: str) -> User:
    return OnboardingService.build_new_user(user_id, "Rahim", "rahim", None, None)


@pytest.mark.asyncio
async def test_get_missing_user_returns_none(session_factory):
    async with session_factory() as session:
        assert await AccountRepository.get(session, "404") is None


@pytest.mark.asyncio
async def test_create_if_absent_only_creates_once(session_factory, load_user):
    async with session_factory() as session:
        assert await AccountRepository.create_if_absent(session, _new_user("100")) is True
        await session.commit()

    async with session_factory() as session:
        duplicate = _new_user("100")
        duplicate.balance = 999
        assert await AccountRepository.create_if_absent(session, duplicate) is False
        await session.commit()

    user = await load_user("100")
    assert user.balance == 25
    assert user.version == 1


@pytest.mark.asyncio
async def test_apply_delta_increments_and_bumps_version(session_factory, create_user, load_user):
    await create_user("100", balance=10, gems=1)

    async with session_factory() as session:
        await AccountRepository.apply_delta(session, "100", {"balance": 15, "gems": 2, "ad_watch": 1})
        await session.commit()

    user = await load_user("100")
    assert user.balance == 25
    assert user.gems == 3
    assert user.ad_watch == 1
    assert user.version == 2


@pytest.mark.asyncio
async def test_apply_delta_treats_null_counter_as_zero(session_factory, create_user, load_user):
    await create_user("100", total_ads_watched=None)

    async with session_factory() as session:
        await AccountRepository.apply_delta(session, "100", {"total_ads_watched": 1})
        await session.commit()

    assert (await load_user("100")).total_ads_watched == 1


@pytest.mark.asyncio
async def test_apply_delta_never_goes_negative(session_factory, create_user, load_user):
    await create_user("100", unclaimed_gems=1)

    async with session_factory() as session:
        with pytest.raises(NotFound):
            await AccountRepository.apply_delta(session, "100", {"unclaimed_gems": -2})
        await session.rollback()

    assert (await load_user("100")).unclaimed_gems == 1


@pytest.mark.asyncio
async def test_apply_delta_missing_user(session_factory):
    async with session_factory() as session:
        with pytest.raises(NotFound):
            await AccountRepository.apply_delta(session, "404", {"balance": 5})


@pytest.mark.asyncio
async def test_apply_delta_rejects_non_counter_fields(session_factory):
    async with session_factory() as session:
        with pytest.raises(ValueError):
            await AccountRepository.apply_delta(session, "100", {"name": 1})


def test_append_to_set_is_idempotent():
    user = _new_user("100")
    user.completed_tasks = None

    assert AccountRepository.append_to_set(user, "completed_tasks", "pocket_money") is True
    assert AccountRepository.append_to_set(user, "completed_tasks", "pocket_money") is False
    assert user.completed_tasks == ["pocket_money"]


@pytest.mark.asyncio
async def test_stale_write_is_detected(session_factory, create_user):
    await create_user("100", gems=0)

    async with session_factory() as first, session_factory() as second:
        user = await AccountRepository.get(first, "100")
        await first.commit()

        await AccountRepository.apply_delta(second, "100", {"gems": 5})
        await second.commit()

        user.gems = 1
        with pytest.raises(StaleDataError):
            await first.commit()


@pytest.mark.asyncio
async def test_run_transaction_retries_on_conflict(session_factory):
    attempts = []

    async def operation(session):
        attempts.append(1)
        if len(attempts) == 1:
            raise StaleDataError("conflict")
        return "done"

    async with session_factory() as session:
        assert await AccountRepository.run_transaction(session, operation) == "done"

    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_run_transaction_gives_up_after_max_attempts(session_factory):
    async def operation(session):
        raise StaleDataError("conflict")

    async with session_factory() as session:
        with pytest.raises(InternalFailure):
            await AccountRepository.run_transaction(session, operation, max_attempts=3)


@pytest.mark.asyncio
async def test_run_transaction_rolls_back_on_error(session_factory, load_user):
    async def operation(session):
        await AccountRepository.create_if_absent(session, _new_user("100"))
        raise NotFound()

    async with session_factory() as session:
        with pytest.raises(NotFound):
            await AccountRepository.run_transaction(session, operation)

    assert await load_user("100") is None


@pytest.mark.asyncio
async def test_list_user_ids(session_factory, create_user):
    await create_user("1")
    await create_user("2")

    async with session_factory() as session:
        assert sorted(await AccountRepository.list_user_ids(session)) == ["1", "2"]
