"""
app/services/telegram_service.py

Purpose: Telegram Bot API client

- Sends HTML messages with inline keyboards
- Edits messages and answers callback queries
- Webhook registration and long polling for updates
- Raises DeliveryError / ExternalServiceError; callers decide what to swallow
"""

import httpx
from typing import Any, Dict, List, Optional

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import DeliveryError, ExternalServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)


class TelegramClient:
    """Minimal async client for the Telegram Bot API."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        session: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self._base_url = f"{base_url.rstrip('/')}/bot{token}"
        self._session = session or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "TelegramClient":
        config = config or default_settings
        return cls(
            config.TELEGRAM_BOT_TOKEN or "",
            base_url=config.TELEGRAM_API_URL,
            timeout=config.TELEGRAM_TIMEOUT,
        )

    async def close(self) -> None:
        await self._session.aclose()

    async def _request(self, method: str, payload: Dict[str, Any], *, timeout: Optional[float] = None) -> Any:
        url = f"{self._base_url}/{method}"
        try:
            if timeout is None:
                response = await self._session.post(url, json=payload)
            else:
                response = await self._session.post(url, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(f"Telegram {method} timed out") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Telegram {method} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Telegram {method} returned non-JSON body",
                details={"status_code": response.status_code},
            ) from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            raise ExternalServiceError(
                f"Telegram {method} rejected: {description or response.status_code}",
                details={"status_code": response.status_code, "description": description},
            )
        return data.get("result")

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        reply_markup: Optional[Dict[str, Any]] = None,
        parse_mode: Optional[str] = "HTML",
        disable_web_page_preview: bool = True,
    ) -> Optional[int]:
        """
        Sends a message to a chat.

        Returns:
            Telegram message_id of the sent message

        Raises:
            DeliveryError: If Telegram refused or could not be reached
        """
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": disable_web_page_preview,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup

        try:
            result = await self._request("sendMessage", payload)
        except ExternalServiceError as e:
            raise DeliveryError(chat_id, e.message) from e

        message_id = result.get("message_id") if isinstance(result, dict) else None
        logger.debug(f"Message {message_id} delivered to {chat_id}")
        return message_id

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        reply_markup: Optional[Dict[str, Any]] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> None:
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup
        await self._request("editMessageText", payload)

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        *,
        show_alert: bool = False,
    ) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
            payload["show_alert"] = show_alert
        await self._request("answerCallbackQuery", payload)

    async def get_updates(self, *, offset: Optional[int] = None, timeout: int = 25) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        # Long polling holds the request open for `timeout` seconds
        result = await self._request("getUpdates", payload, timeout=timeout + 10)
        return result or []

    async def set_webhook(self, url: str, *, secret_token: Optional[str] = None) -> bool:
        payload: Dict[str, Any] = {
            "url": url,
            "allowed_updates": ["message", "callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token
        return bool(await self._request("setWebhook", payload))

    async def delete_webhook(self) -> bool:
        return bool(await self._request("deleteWebhook", {}))

    async def get_me(self) -> Dict[str, Any]:
        return await self._request("getMe", {})

    def is_configured(self) -> bool:
        """Check if a bot token is present"""
        return bool(self.token)
