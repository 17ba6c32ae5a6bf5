"""
app/api/polling.py

Purpose: Long-polling update loop

- Alternative to the webhook for local development (TELEGRAM_MODE=polling)
- Feeds the same dispatcher the webhook uses
"""

import asyncio
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger
from app.flow.dispatcher import Dispatcher
from app.schemas.telegram import TelegramUpdate, parse_telegram_update
from app.services.telegram_service import TelegramClient

logger = get_logger(__name__)

RETRY_DELAY_SECONDS = 5


async def process_update(dispatcher: Dispatcher, raw_update: dict) -> None:
    try:
        update = TelegramUpdate.model_validate(raw_update)
    except PydanticValidationError as e:
        logger.warning(f"Skipping malformed update: {e.error_count()} error(s)")
        return

    event = parse_telegram_update(update)
    if event is not None:
        await dispatcher.dispatch(event)


async def run_polling(
    client: TelegramClient,
    dispatcher: Dispatcher,
    stop_event: Optional[asyncio.Event] = None,
    poll_timeout: int = 25,
) -> None:
    """
    Fetches updates until stop_event is set.

    Updates of one batch are dispatched concurrently; the dispatcher keeps
    each conversation in order.
    """
    stop_event = stop_event or asyncio.Event()
    offset: Optional[int] = None

    # getUpdates is refused while a webhook is registered
    await client.delete_webhook()
    logger.info("📡 Long polling started")

    while not stop_event.is_set():
        try:
            updates = await client.get_updates(offset=offset, timeout=poll_timeout)
        except ExternalServiceError as e:
            logger.error(f"getUpdates failed: {e.message}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=RETRY_DELAY_SECONDS)
            except asyncio.TimeoutError:
                pass
            continue

        if not updates:
            continue

        offset = max(u.get("update_id", 0) for u in updates) + 1
        await asyncio.gather(*(process_update(dispatcher, u) for u in updates))

    logger.info("Long polling stopped")
