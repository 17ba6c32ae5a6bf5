"""
app/flow/dispatcher.py

Purpose: Central event dispatcher

- Receives normalized events from the webhook or the poller
- Routes commands, button presses and free text to the right handler
- Serializes events per conversation, different conversations run concurrently
- Delivers the handler's reply via Telegram
"""

import asyncio
from typing import Any, Dict, Optional

from app.core.exceptions import (
    AuthorizationError,
    DeliveryError,
    ExternalServiceError,
    IntakeBotError,
    PersistenceError,
    ResourceNotFoundError,
)
from app.core.logging import get_logger, LogContext
from app.flow.actions import (
    ApproveAction,
    ConfirmAction,
    DeclineAction,
    MenuAction,
    MenuCommand,
    PickAction,
    SkipCaseAction,
    TakeCaseAction,
    decode_action,
)
from app.flow.context import BotServices
from app.flow.engine import DialogInput
from app.flow.handlers.admin import handle_admin_panel, handle_approve, handle_decline
from app.flow.handlers.cases import handle_skip_case, handle_take_case
from app.flow.handlers.menu import handle_help, handle_main_menu, handle_start, handle_status
from app.flow.states import WizardName
from app.schemas.telegram import InboundEvent
from utils.constants import (
    FORM_INACTIVE_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    STORE_UNAVAILABLE_MESSAGE,
    SUBMISSION_FAILED_MESSAGE,
    UNKNOWN_INPUT_MESSAGE,
)
from utils.telegram_utils import create_callback_answer, create_text_message
from utils.validation_utils import is_command, parse_command

logger = get_logger(__name__)

Reply = Dict[str, Any]


class Dispatcher:
    """
    Routes inbound events to handlers and sends the replies.

    dispatch() never raises; every failure ends in a user-visible message
    and a log line.
    """

    def __init__(self, services: BotServices):
        self.services = services
        self._locks: Dict[int, asyncio.Lock] = {}
        self._waiters: Dict[int, int] = {}

    async def dispatch(self, event: InboundEvent) -> Dict[str, Any]:
        """
        Handles one event, in arrival order relative to other events of
        the same conversation.

        Returns:
            {"status": "success"} or {"status": "error", "error": ...}
        """
        conversation_id = event.conversation_id
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._waiters[conversation_id] = self._waiters.get(conversation_id, 0) + 1
        try:
            async with lock:
                return await self._dispatch_locked(event)
        finally:
            self._waiters[conversation_id] -= 1
            if self._waiters[conversation_id] == 0:
                del self._waiters[conversation_id]
                del self._locks[conversation_id]

    @property
    def active_conversations(self) -> int:
        return len(self._locks)

    async def _dispatch_locked(self, event: InboundEvent) -> Dict[str, Any]:
        with LogContext(user_id=event.user_id):
            status: Dict[str, Any] = {"status": "success"}
            try:
                reply = await self.route(event)
            except (AuthorizationError, ResourceNotFoundError) as e:
                logger.warning(f"Refused: {e.message}")
                reply = self._visible_error(event, e)
            except PersistenceError as e:
                logger.error(f"Record store failure: {e.message}")
                reply = self._persistence_reply(event)
                status = {"status": "error", "error": e.code}
            except Exception as e:
                logger.error(f"Dispatcher error: {e}", exc_info=True)
                reply = create_text_message(GENERIC_ERROR_MESSAGE)
                status = {"status": "error", "error": str(e)}

            if not await self.respond(event, reply) and status["status"] == "success":
                status = {"status": "error", "error": "DELIVERY_FAILED"}
            return status

    def _visible_error(self, event: InboundEvent, error: IntakeBotError) -> Reply:
        if event.is_callback:
            return create_callback_answer(error.message, alert=True)
        return create_text_message(error.message, self.services.menu_keyboard(event.user_id))

    def _persistence_reply(self, event: InboundEvent) -> Reply:
        # A failed confirm leaves the session at review, so it can be pressed again
        confirming = event.is_callback and isinstance(decode_action(event.callback_data), ConfirmAction)
        if confirming and self.services.engine.has_session(event.conversation_id):
            return create_text_message(SUBMISSION_FAILED_MESSAGE)
        return create_text_message(STORE_UNAVAILABLE_MESSAGE, self.services.menu_keyboard(event.user_id))

    # ------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------

    async def route(self, event: InboundEvent) -> Optional[Reply]:
        """
        Picks the handler for an event and returns its reply.

        Raises:
            AuthorizationError: The caller lacks the role the action needs
            ResourceNotFoundError: The action names an unknown applicant
            PersistenceError: Propagated from the store or a completion step
        """
        if event.is_callback:
            return await self._route_callback(event)
        if is_command(event.text):
            return await self._route_command(event)
        return await self._route_text(event)

    async def _route_command(self, event: InboundEvent) -> Reply:
        command = parse_command(event.text)
        logger.info(f"Command /{command}")

        if command == "start":
            return await handle_start(self.services, event)
        if command == "menu":
            return await handle_main_menu(self.services, event)
        if command == "help":
            return await handle_help(self.services, event)
        if command == "status":
            return await handle_status(self.services, event)
        if command == "cancel":
            return self.services.engine.cancel(event.conversation_id)

        # Unknown commands inside a dialog are treated like any other bad answer
        if self.services.engine.has_session(event.conversation_id):
            return await self._route_text(event)
        return create_text_message(UNKNOWN_INPUT_MESSAGE, self.services.menu_keyboard(event.user_id))

    async def _route_text(self, event: InboundEvent) -> Reply:
        reply = await self.services.engine.advance(event.conversation_id, DialogInput.from_text(event.text))
        if reply is None:
            return create_text_message(UNKNOWN_INPUT_MESSAGE, self.services.menu_keyboard(event.user_id))
        return reply

    async def _route_callback(self, event: InboundEvent) -> Optional[Reply]:
        action = decode_action(event.callback_data)
        engine = self.services.engine
        services = self.services

        if action is None:
            logger.debug(f"Ignoring unknown callback {event.callback_data!r}")
            return None

        logger.info(f"Callback {event.callback_data}")

        if isinstance(action, MenuAction):
            command = action.command
            if command == MenuCommand.JOIN:
                return engine.enter(WizardName.JOIN, event.conversation_id, event.username)
            if command == MenuCommand.REPORT:
                return engine.enter(WizardName.REPORT, event.conversation_id, event.username)
            if command == MenuCommand.STATUS:
                return await handle_status(services, event)
            if command == MenuCommand.ADMIN:
                return await handle_admin_panel(services, event)
            if command == MenuCommand.CANCEL:
                return engine.cancel(event.conversation_id)
            if command == MenuCommand.HELP:
                return await handle_help(services, event)
            return await handle_main_menu(services, event)

        if isinstance(action, ConfirmAction):
            reply = await engine.advance(event.conversation_id, DialogInput.confirm(action.wizard))
            return reply if reply is not None else create_callback_answer(FORM_INACTIVE_MESSAGE)

        if isinstance(action, PickAction):
            reply = await engine.advance(event.conversation_id, DialogInput.from_pick(action.code))
            return reply if reply is not None else create_callback_answer(FORM_INACTIVE_MESSAGE)

        if isinstance(action, ApproveAction):
            return await handle_approve(services, event, action.user_id)
        if isinstance(action, DeclineAction):
            return await handle_decline(services, event, action.user_id)
        if isinstance(action, TakeCaseAction):
            return await handle_take_case(services, event, action.requester_id)
        if isinstance(action, SkipCaseAction):
            return await handle_skip_case(services, event, action.requester_id)

        return None

    # ------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------

    async def respond(self, event: InboundEvent, reply: Optional[Reply]) -> bool:
        """
        Applies a handler reply: answers the button press, edits the pressed
        message, and sends a new message, in that order.

        Button presses are always answered, even without a reply, so the
        client stops its loading indicator.

        Returns:
            False if the reply message could not be delivered
        """
        reply = reply or {}
        client = self.services.client

        if event.is_callback and event.callback_query_id:
            alert = reply.get("alert")
            try:
                await client.answer_callback_query(
                    event.callback_query_id,
                    alert or reply.get("toast"),
                    show_alert=bool(alert),
                )
            except ExternalServiceError as e:
                logger.warning(f"Could not answer callback: {e.message}")

        if "edit_text" in reply and event.message_id is not None:
            try:
                await client.edit_message_text(
                    event.chat_id,
                    event.message_id,
                    reply["edit_text"],
                    reply_markup=reply.get("edit_markup"),
                )
            except ExternalServiceError as e:
                logger.warning(f"Could not edit message {event.message_id}: {e.message}")

        text = reply.get("text")
        if not text:
            return True
        try:
            await self.services.router.send_one(
                event.chat_id,
                text,
                reply.get("reply_markup"),
                critical=True,
            )
        except DeliveryError as e:
            logger.error(f"Reply to {event.chat_id} not delivered: {e.message}")
            return False
        return True
