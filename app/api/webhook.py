"""
app/api/webhook.py

Purpose: Telegram webhook endpoint

- Verifies the secret token Telegram echoes on every call
- Validates and normalizes the update
- Passes control to the flow dispatcher
- Answers 200 once the payload is parsed, so Telegram does not redeliver
"""

import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException, Request

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.schemas.telegram import TelegramUpdate, parse_telegram_update

logger = get_logger(__name__)
router = APIRouter()


def verify_secret(received: Optional[str], expected: Optional[str]) -> None:
    """
    Raises AuthenticationError when a secret is configured and the header
    does not match it.
    """
    if not expected:
        return
    if not received or not secrets.compare_digest(received, expected):
        raise AuthenticationError("Invalid webhook secret token")


@router.post("/telegram/webhook")
async def telegram_webhook(
    update: TelegramUpdate,
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """
    Receives one Telegram update.

    Group traffic, edits and other update kinds are acknowledged and ignored.
    """
    verify_secret(x_telegram_bot_api_secret_token, settings.TELEGRAM_WEBHOOK_SECRET)

    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        # Not started yet; a non-2xx makes Telegram retry later
        raise HTTPException(status_code=503, detail="Bot is not ready")

    event = parse_telegram_update(update)
    if event is None:
        logger.debug(f"Ignoring update {update.update_id}")
        return {"ok": True}

    logger.info(f"📨 Update {update.update_id} ({event.kind}) from {event.user_id}")
    result = await dispatcher.dispatch(event)
    return {"ok": True, "status": result.get("status")}
