from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app

client = TestClient(app)

WEBHOOK = f"{settings.API_PREFIX}/telegram/webhook"


def private_message(text="/start", chat_type="private"):
    return {
        "update_id": 1,
        "message": {
            "message_id": 5,
            "chat": {"id": 7, "type": chat_type},
            "from": {"id": 7, "is_bot": False, "first_name": "Eve", "username": "eve"},
            "text": text,
        },
    }


@pytest.fixture
def dispatcher(monkeypatch):
    stub = SimpleNamespace(dispatch=AsyncMock(return_value={"status": "success"}))
    monkeypatch.setattr(app.state, "dispatcher", stub, raising=False)
    return stub


def test_live_is_static():
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_health_reports_missing_database():
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "unhealthy"


def test_ready_before_startup():
    response = client.get("/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


def test_webhook_dispatches_private_message(dispatcher):
    response = client.post(WEBHOOK, json=private_message())

    assert response.status_code == 200
    assert response.json()["ok"] is True
    event = dispatcher.dispatch.await_args.args[0]
    assert event.kind == "message"
    assert event.user_id == 7
    assert event.username == "eve"
    assert event.text == "/start"


def test_webhook_normalizes_button_press(dispatcher):
    update = {
        "update_id": 2,
        "callback_query": {
            "id": "cq1",
            "from": {"id": 7, "first_name": "Eve"},
            "message": {
                "message_id": 9,
                "chat": {"id": 7, "type": "private"},
                "text": "menu",
                "reply_markup": {"inline_keyboard": [[{"text": "Join", "callback_data": "go_join"}]]},
            },
            "data": "go_join",
        },
    }

    response = client.post(WEBHOOK, json=update)

    assert response.status_code == 200
    event = dispatcher.dispatch.await_args.args[0]
    assert event.is_callback
    assert event.callback_data == "go_join"
    assert event.message_id == 9
    assert event.message_buttons == ["go_join"]


def test_webhook_ignores_group_messages(dispatcher):
    response = client.post(WEBHOOK, json=private_message(chat_type="group"))

    assert response.status_code == 200
    dispatcher.dispatch.assert_not_awaited()


def test_webhook_rejects_wrong_secret(dispatcher, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")

    response = client.post(WEBHOOK, json=private_message(), headers={"X-Telegram-Bot-Api-Secret-Token": "nope"})

    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"
    dispatcher.dispatch.assert_not_awaited()


def test_webhook_accepts_matching_secret(dispatcher, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "s3cret")

    response = client.post(WEBHOOK, json=private_message(), headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"})

    assert response.status_code == 200
    dispatcher.dispatch.assert_awaited_once()


def test_webhook_rejects_malformed_update(dispatcher):
    response = client.post(WEBHOOK, json={"message": "nope"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_webhook_before_startup_asks_for_retry():
    response = client.post(WEBHOOK, json=private_message())
    assert response.status_code == 503
