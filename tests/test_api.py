from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from shared.database import get_session
from shared.errors import (
    AlreadyClaimed, DailyLimitReached, NoGemsAvailable, NotFound, NotQualified, VerificationUnavailable
)
from shared.schemas import AccountSnapshot
from bot_api.main import app
from bot_api.services.task_service import TaskResult


async def _no_session():
    yield None


@pytest.fixture
def client():
    app.dependency_overrides[get_session] = _no_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def balance_service(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr("bot_api.miniapp.BalanceService", mock)
    monkeypatch.setattr("bot_api.webhooks.adsgram.BalanceService", mock)
    return mock


@pytest.fixture
def task_service(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr("bot_api.miniapp.TaskService", mock)
    return mock


@pytest.fixture
def voucher_service(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr("bot_api.miniapp.VoucherService", mock)
    return mock


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestClaimGems:

    def test_success(self, client, balance_service):
        balance_service.claim_gems.return_value = 6

        response = client.post("/claim-gems", json={"userId": 100})

        assert response.status_code == 200
        assert response.json() == {"message": "Gems claimed successfully!", "claimed": 6}
        assert balance_service.claim_gems.await_args.args[1] == "100"

    def test_missing_user_id(self, client, balance_service):
        response = client.post("/claim-gems", json={})

        assert response.status_code == 400
        assert "message" in response.json()
        balance_service.claim_gems.assert_not_awaited()

    def test_no_gems(self, client, balance_service):
        balance_service.claim_gems.side_effect = NoGemsAvailable()

        response = client.post("/claim-gems", json={"userId": "100"})

        assert response.status_code == 400
        assert response.json() == {"message": "You have no gems to claim."}

    def test_limit_reached(self, client, balance_service):
        balance_service.claim_gems.side_effect = DailyLimitReached(6)

        response = client.post("/claim-gems", json={"userId": "100"})

        assert response.status_code == 400
        assert "6" in response.json()["message"]


class TestCheckBalance:

    def test_success(self, client, balance_service):
        balance_service.get_account_snapshot.return_value = AccountSnapshot(
            id="100", balance=40, gems=3, unclaimed_gems=2
        )

        response = client.post("/api/check-balance", json={"userId": "100"})

        assert response.json() == {"success": True, "balance": 40, "gems": 3, "unclaimedGems": 2}

    def test_not_found(self, client, balance_service):
        balance_service.get_account_snapshot.side_effect = NotFound()

        response = client.post("/api/check-balance", json={"userId": "100"})

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_invalid_id(self, client, balance_service):
        response = client.post("/api/check-balance", json={"userId": "abc"})

        assert response.status_code == 400


class TestVerifyPocketMoney:

    def test_granted(self, client, task_service):
        task_service.verify_partner_task.return_value = TaskResult(gems_granted=10)

        response = client.post("/verify-pocket-money", json={"userId": "100", "taskId": "pocket_money"})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["gems"] == 10

    def test_extra_fields_forwarded(self, client, task_service):
        task_service.verify_partner_task.return_value = TaskResult(gems_granted=10)

        client.post("/verify-pocket-money", json={"userId": "100", "taskId": "pocket_money", "phone": "017"})

        assert task_service.verify_partner_task.await_args.kwargs["payload"] == {"phone": "017"}

    def test_already_completed(self, client, task_service):
        task_service.verify_partner_task.return_value = TaskResult(gems_granted=0, already_completed=True)

        response = client.post("/verify-pocket-money", json={"userId": "100", "taskId": "pocket_money"})

        assert response.json() == {
            "success": True, "alreadyCompleted": True, "message": "Task already completed."
        }

    def test_not_qualified_is_not_http_error(self, client, task_service):
        task_service.verify_partner_task.side_effect = NotQualified(150, 200)

        response = client.post("/verify-pocket-money", json={"userId": "100", "taskId": "pocket_money"})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert "150" in response.json()["message"]

    def test_partner_unavailable(self, client, task_service):
        task_service.verify_partner_task.side_effect = VerificationUnavailable()

        response = client.post("/verify-pocket-money", json={"userId": "100", "taskId": "pocket_money"})

        assert response.status_code == 503
        assert response.json()["success"] is False


class TestVerifyHuman:

    def test_success(self, client, task_service):
        response = client.post(
            "/api/verify-human", json={"userId": "100", "name": "Rahim", "age": 21, "district": "Dhaka"}
        )

        assert response.json() == {"success": True, "message": "Verification successful."}
        assert task_service.verify_human.await_args.args[2] == {
            "name": "Rahim", "age": 21, "district": "Dhaka"
        }

    def test_not_found(self, client, task_service):
        task_service.verify_human.side_effect = NotFound()

        response = client.post("/api/verify-human", json={"userId": "100", "name": "Rahim"})

        assert response.status_code == 404


class TestClaimRefVoucher:

    def test_success(self, client, voucher_service):
        voucher_service.claim_voucher.return_value = 10

        response = client.post("/api/claim-ref-voucher", json={"userId": "100", "voucherType": "v9"})

        assert response.json()["success"] is True
        assert response.json()["gems"] == 10
        assert voucher_service.claim_voucher.await_args.args[1:] == ("100", "v9")

    def test_already_claimed(self, client, voucher_service):
        voucher_service.claim_voucher.side_effect = AlreadyClaimed()

        response = client.post("/api/claim-ref-voucher", json={"userId": "100", "voucherType": "v9"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Voucher already claimed today."}


class TestAdRewardWebhook:

    def test_granted(self, client, balance_service):
        balance_service.grant_ad_reward.return_value = True

        response = client.get("/api/adsgram-reward", params={"userid": "100", "rewardid": "r-1"})

        assert response.json() == {"success": True, "message": "Reward granted."}
        assert balance_service.grant_ad_reward.await_args.kwargs["reward_id"] == "r-1"

    def test_legacy_path(self, client, balance_service):
        balance_service.grant_ad_reward.return_value = True

        response = client.get("/api/grant-reward-firestore", params={"userid": "100"})

        assert response.status_code == 200
        assert balance_service.grant_ad_reward.await_args.kwargs["reward_id"] is None

    def test_duplicate(self, client, balance_service):
        balance_service.grant_ad_reward.return_value = False

        response = client.get("/api/adsgram-reward", params={"userid": "100", "reward_id": "r-1"})

        assert response.json() == {"success": True, "message": "Reward already granted."}

    def test_missing_user_id(self, client, balance_service):
        response = client.get("/api/adsgram-reward")

        assert response.status_code == 400
        balance_service.grant_ad_reward.assert_not_awaited()

    def test_unknown_user(self, client, balance_service):
        balance_service.grant_ad_reward.side_effect = NotFound()

        response = client.get("/api/adsgram-reward", params={"userid": "100"})

        assert response.status_code == 404

    def test_store_failure(self, client, balance_service):
        balance_service.grant_ad_reward.side_effect = OperationalError("UPDATE", {}, Exception("down"))

        response = client.get("/api/adsgram-reward", params={"userid": "100"})

        assert response.status_code == 500
        assert response.json()["success"] is False


def test_telegram_webhook_rejects_bad_secret(client, monkeypatch):
    monkeypatch.setattr("bot_api.webhooks.telegram.TELEGRAM_WEBHOOK_SECRET", "s3cret")

    response = client.post(
        "/webhook/telegram", json={}, headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"}
    )

    assert response.status_code == 403


def test_health_all_reports_failing_service(client, monkeypatch):
    from bot_api import health

    async def up():
        return None

    async def down():
        raise ConnectionError("connection refused")

    monkeypatch.setitem(health.PROBES, "database", up)
    monkeypatch.setitem(health.PROBES, "redis", down)

    response = client.get("/health/all")

    assert response.status_code == 503
    body = response.json()
    assert body["services"]["database"] == "healthy"
    assert body["services"]["redis"].startswith("unhealthy")
