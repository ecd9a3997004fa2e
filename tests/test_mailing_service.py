import pytest

from shared.redis_client import RedisCache
from bot_api.services.mailing_service import (
    BroadcastService,
    InvalidMailingTransition,
    MailingDraft,
    MailingStateStore,
    MailingStep,
)

ADMIN_ID = 1


@pytest.fixture
def store(fake_redis):
    return MailingStateStore(store=RedisCache(client=fake_redis), ttl=60)


class TestMailingState:

    @pytest.mark.asyncio
    async def test_idle_by_default(self, store):
        assert await store.get_step(ADMIN_ID) == MailingStep.IDLE

    @pytest.mark.asyncio
    async def test_full_flow(self, store):
        await store.start(ADMIN_ID)
        assert await store.get_step(ADMIN_ID) == MailingStep.AWAITING_MESSAGE

        draft = await store.capture(ADMIN_ID, chat_id=1, message_id=42)
        assert draft == MailingDraft(chat_id=1, message_id=42)
        assert await store.get_step(ADMIN_ID) == MailingStep.AWAITING_CONFIRMATION

        confirmed = await store.confirm(ADMIN_ID)
        assert confirmed == draft
        assert await store.get_step(ADMIN_ID) == MailingStep.IDLE

    @pytest.mark.asyncio
    async def test_second_confirm_is_rejected(self, store):
        await store.start(ADMIN_ID)
        await store.capture(ADMIN_ID, chat_id=1, message_id=42)
        await store.confirm(ADMIN_ID)

        with pytest.raises(InvalidMailingTransition) as exc_info:
            await store.confirm(ADMIN_ID)

        assert exc_info.value.current == MailingStep.IDLE

    @pytest.mark.asyncio
    async def test_confirm_before_capture_keeps_state(self, store):
        await store.start(ADMIN_ID)

        with pytest.raises(InvalidMailingTransition):
            await store.confirm(ADMIN_ID)

        assert await store.get_step(ADMIN_ID) == MailingStep.AWAITING_MESSAGE

    @pytest.mark.asyncio
    async def test_capture_requires_start(self, store):
        with pytest.raises(InvalidMailingTransition):
            await store.capture(ADMIN_ID, chat_id=1, message_id=42)

    @pytest.mark.asyncio
    async def test_cancel_returns_to_idle(self, store):
        await store.start(ADMIN_ID)
        await store.capture(ADMIN_ID, chat_id=1, message_id=42)
        await store.cancel(ADMIN_ID)

        assert await store.get_step(ADMIN_ID) == MailingStep.IDLE

    @pytest.mark.asyncio
    async def test_restart_discards_draft(self, store):
        await store.start(ADMIN_ID)
        await store.capture(ADMIN_ID, chat_id=1, message_id=42)
        await store.start(ADMIN_ID)

        assert await store.get_step(ADMIN_ID) == MailingStep.AWAITING_MESSAGE

    @pytest.mark.asyncio
    async def test_admins_are_isolated(self, store):
        await store.start(ADMIN_ID)

        assert await store.get_step(2) == MailingStep.IDLE


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_counts_success_and_failure(self, session_factory, create_user):
        for user_id in ("1", "2", "3"):
            await create_user(user_id)
        copied = []

        async def copy_message(user_id, from_chat_id, message_id):
            if user_id == "2":
                raise RuntimeError("bot was blocked by the user")
            copied.append((user_id, from_chat_id, message_id))

        async with session_factory() as session:
            result = await BroadcastService.broadcast(
                session, MailingDraft(chat_id=1, message_id=42), copy_message, concurrency=2
            )

        assert result == (2, 1)
        assert sorted(copied) == [("1", 1, 42), ("3", 1, 42)]

    @pytest.mark.asyncio
    async def test_no_users(self, session_factory):
        async def copy_message(user_id, from_chat_id, message_id):
            raise AssertionError("nothing to send")

        async with session_factory() as session:
            result = await BroadcastService.broadcast(
                session, MailingDraft(chat_id=1, message_id=42), copy_message
            )

        assert result == (0, 0)
