import asyncio
import copy
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from pymongo.errors import PyMongoError

from app.core.config import Settings
from app.core.exceptions import DeliveryError, ExternalServiceError
from app.flow.context import build_services
from app.flow.dispatcher import Dispatcher
from app.schemas.telegram import InboundEvent
from app.services.applicant_service import ApplicantStore
from utils.constants import MAX_MESSAGE_LENGTH

ADMIN_ID = 1


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    def sort(self, keys):
        for key, direction in reversed(keys):
            self._documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return self._documents if length is None else self._documents[:length]


class FakeCollection:
    """In-memory stand-in for the Motor calls ApplicantStore makes."""

    def __init__(self):
        self.documents: List[Dict[str, Any]] = []
        self.fail = False
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise PyMongoError("store offline")

    def _match(self, document, query):
        return all(document.get(key) == value for key, value in query.items())

    async def update_one(self, query, update, upsert=False):
        self._check()
        for document in self.documents:
            if self._match(document, query):
                document.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)

        document = {"_id": next(self._ids), **query}
        document.update(update.get("$setOnInsert", {}))
        document.update(update.get("$set", {}))
        self.documents.append(document)
        return SimpleNamespace(matched_count=0, upserted_id=document["_id"])

    async def find_one(self, query):
        self._check()
        for document in self.documents:
            if self._match(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query):
        self._check()
        return FakeCursor([copy.deepcopy(d) for d in self.documents if self._match(d, query)])

    async def delete_one(self, query):
        self.documents = [d for d in self.documents if not self._match(d, query)]


class FakeTelegramClient:
    """Records outbound Bot API calls; sends to `failing_ids` and over-long texts raise."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.edits: List[Dict[str, Any]] = []
        self.answers: List[Dict[str, Any]] = []
        self.failing_ids = set()
        self._message_ids = itertools.count(100)

    async def send_message(self, chat_id, text, *, reply_markup=None, **kwargs) -> Optional[int]:
        # yield like a real network call would
        await asyncio.sleep(0)
        if chat_id in self.failing_ids:
            raise DeliveryError(chat_id, "Forbidden: bot was blocked by the user")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise DeliveryError(chat_id, "Bad Request: message is too long")
        message_id = next(self._message_ids)
        self.sent.append({"chat_id": chat_id, "text": text, "reply_markup": reply_markup, "message_id": message_id})
        return message_id

    async def edit_message_text(self, chat_id, message_id, text, *, reply_markup=None, **kwargs):
        if chat_id in self.failing_ids:
            raise ExternalServiceError("message can't be edited")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ExternalServiceError("Bad Request: message is too long")
        self.edits.append({"chat_id": chat_id, "message_id": message_id, "text": text, "reply_markup": reply_markup})

    async def answer_callback_query(self, callback_query_id, text=None, *, show_alert=False):
        self.answers.append({"id": callback_query_id, "text": text, "show_alert": show_alert})

    async def close(self):
        pass

    def sent_to(self, chat_id) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["chat_id"] == chat_id]


def make_message(user_id: int, text: Optional[str], username: Optional[str] = None) -> InboundEvent:
    return InboundEvent(kind="message", user_id=user_id, chat_id=user_id, username=username, text=text, message_id=1)


def make_callback(
    user_id: int,
    data: str,
    message_text: Optional[str] = None,
    username: Optional[str] = None,
    message_buttons: Optional[List[str]] = None,
) -> InboundEvent:
    return InboundEvent(
        kind="callback",
        user_id=user_id,
        chat_id=user_id,
        username=username,
        callback_data=data,
        callback_query_id=f"cq-{user_id}-{data}",
        message_id=42,
        message_text=message_text,
        message_buttons=message_buttons or [],
    )


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="development",
        TELEGRAM_BOT_TOKEN="123:abc",
        ADMIN_CHAT_ID=ADMIN_ID,
        ADMIN_HANDLE="chief",
        BOT_VERSION="test",
    )


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def store(collection):
    return ApplicantStore(collection)


@pytest.fixture
def telegram():
    return FakeTelegramClient()


@pytest.fixture
def services(store, telegram, test_settings):
    return build_services(store, telegram, test_settings)


@pytest.fixture
def dispatcher(services):
    return Dispatcher(services)
