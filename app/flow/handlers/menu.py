"""
app/flow/handlers/menu.py

Handles: Main menu, help and status lookup

- /start and /menu reset the conversation to the main menu
- Status lookup reads the caller's own application only
"""

from typing import Any, Dict

from app.core.logging import get_logger, LogContext
from app.flow.context import BotServices
from app.schemas.telegram import InboundEvent
from utils.constants import (
    HELP_MESSAGE,
    MAIN_MENU_MESSAGE,
    STATUS_MESSAGE,
    STATUS_NOT_FOUND_MESSAGE,
    WELCOME_MESSAGE,
)
from utils.telegram_utils import back_to_menu_keyboard, create_text_message, fit_fields
from utils.time_utils import format_timestamp

logger = get_logger(__name__)


async def handle_start(services: BotServices, event: InboundEvent) -> Dict[str, Any]:
    """
    Shows the welcome text and the main menu.

    Any dialog in progress is discarded.
    """
    with LogContext(user_id=event.user_id, action="start"):
        if services.engine.discard(event.conversation_id) is not None:
            logger.info("Active dialog discarded by /start")
        return create_text_message(
            WELCOME_MESSAGE.format(version=services.version),
            services.menu_keyboard(event.user_id),
        )


async def handle_main_menu(services: BotServices, event: InboundEvent) -> Dict[str, Any]:
    services.engine.discard(event.conversation_id)
    return create_text_message(MAIN_MENU_MESSAGE, services.menu_keyboard(event.user_id))


async def handle_help(services: BotServices, event: InboundEvent) -> Dict[str, Any]:
    return create_text_message(HELP_MESSAGE, back_to_menu_keyboard())


async def handle_status(services: BotServices, event: InboundEvent) -> Dict[str, Any]:
    """
    Reports the caller's application status.

    Raises:
        PersistenceError: If the store cannot be read
    """
    with LogContext(user_id=event.user_id, action="status"):
        record = await services.store.find_by_key(event.user_id)
        if record is None:
            logger.info("Status requested without an application")
            return create_text_message(STATUS_NOT_FOUND_MESSAGE, services.menu_keyboard(event.user_id))

        text = fit_fields(
            STATUS_MESSAGE,
            {"nick": record.nick, "region": record.region},
            registered_at=format_timestamp(record.registered_at),
            label=record.status_label,
        )
        return create_text_message(text, back_to_menu_keyboard())
