"""
app/schemas/telegram.py

Purpose: Telegram update schemas and parsers

- Validates incoming updates (webhook or long polling)
- Normalizes messages and button presses into InboundEvent
- Ensures predictable request handling
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

from utils.telegram_utils import keyboard_callbacks


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    username: Optional[str] = None
    language_code: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None
    date: Optional[int] = None
    reply_markup: Optional[Dict[str, Any]] = None


class TelegramCallbackQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_user: TelegramUser = Field(..., alias="from")
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None


class InboundEvent(BaseModel):
    """
    Normalized interaction for internal processing.
    """
    kind: Literal["message", "callback"]
    user_id: int = Field(..., description="Telegram user id of the sender")
    chat_id: int = Field(..., description="Chat the reply goes to")
    username: Optional[str] = None
    text: Optional[str] = None
    callback_data: Optional[str] = None
    callback_query_id: Optional[str] = None
    message_id: Optional[int] = None
    message_text: Optional[str] = Field(default=None, description="Text of the message a button belongs to")
    message_buttons: List[str] = Field(default_factory=list, description="Callback ids on the message a button belongs to")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "kind": "callback",
            "user_id": 1001,
            "chat_id": 1001,
            "username": "ghost",
            "callback_data": "go_join",
            "callback_query_id": "4382bfdwdsb323b2d9",
            "message_id": 17,
        }
    })

    @property
    def is_callback(self) -> bool:
        return self.kind == "callback"

    @property
    def conversation_id(self) -> int:
        return self.chat_id


def parse_telegram_update(update: TelegramUpdate) -> Optional[InboundEvent]:
    """
    Turns a Telegram update into an InboundEvent.

    Only private chats are handled; group traffic, edits and updates
    without a sender are ignored (None).
    """
    if update.callback_query is not None:
        query = update.callback_query
        message = query.message
        if message is not None and message.chat.type != "private":
            return None
        return InboundEvent(
            kind="callback",
            user_id=query.from_user.id,
            chat_id=message.chat.id if message else query.from_user.id,
            username=query.from_user.username,
            callback_data=query.data,
            callback_query_id=query.id,
            message_id=message.message_id if message else None,
            message_text=message.text if message else None,
            message_buttons=keyboard_callbacks(message.reply_markup) if message else [],
        )

    message = update.message
    if message is None or message.from_user is None or message.from_user.is_bot:
        return None
    if message.chat.type != "private":
        return None

    return InboundEvent(
        kind="message",
        user_id=message.from_user.id,
        chat_id=message.chat.id,
        username=message.from_user.username,
        text=message.text,
        message_id=message.message_id,
    )
