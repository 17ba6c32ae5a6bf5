import asyncio
import json

import httpx
import pytest

from app.api.polling import process_update
from app.core.exceptions import DeliveryError, ExternalServiceError
from app.services.telegram_service import TelegramClient


def make_client(handler):
    session = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramClient("123:abc", base_url="https://tg.test", session=session)


def test_send_message_posts_html_payload():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 11}})

    client = make_client(handler)
    message_id = asyncio.run(client.send_message(5, "<b>hi</b>", reply_markup={"inline_keyboard": []}))

    assert message_id == 11
    assert seen["url"] == "https://tg.test/bot123:abc/sendMessage"
    assert seen["body"]["parse_mode"] == "HTML"
    assert seen["body"]["chat_id"] == 5


def test_refused_send_raises_delivery_error():
    def handler(request):
        return httpx.Response(403, json={"ok": False, "description": "Forbidden: bot was blocked by the user"})

    client = make_client(handler)

    with pytest.raises(DeliveryError) as excinfo:
        asyncio.run(client.send_message(5, "hi"))
    assert excinfo.value.recipient_id == 5
    assert "blocked" in excinfo.value.reason


def test_transport_failure_raises_external_service_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    client = make_client(handler)

    with pytest.raises(ExternalServiceError):
        asyncio.run(client.answer_callback_query("cq"))


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    async def dispatch(self, event):
        self.events.append(event)
        return {"status": "success"}


def test_polled_updates_reach_the_dispatcher():
    dispatcher = RecordingDispatcher()
    update = {
        "update_id": 3,
        "message": {"message_id": 1, "chat": {"id": 9, "type": "private"}, "from": {"id": 9}, "text": "hi"},
    }

    asyncio.run(process_update(dispatcher, update))
    asyncio.run(process_update(dispatcher, {"update_id": "x"}))

    assert [e.user_id for e in dispatcher.events] == [9]
