"""
app/flow/engine.py

Purpose: Dialog engine

- Owns the session table (conversation id -> DialogSession)
- Enters, advances and cancels wizards
- Re-prompts on malformed input, never aborts a session on bad input
- Evicts sessions idle longer than the configured timeout
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from app.core.exceptions import UnknownWizardError
from app.core.logging import get_logger, LogContext
from app.flow.states import Signal, WizardDefinition, WizardName, get_progress_message
from utils.constants import (
    CANCELLED_MESSAGE,
    MAX_MESSAGE_LENGTH,
    REVIEW_CHOOSE_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TEXT_REQUIRED_MESSAGE,
    TEXT_TOO_LONG_MESSAGE,
)
from utils.telegram_utils import cancel_keyboard, create_text_message, review_keyboard
from utils.time_utils import is_session_expired, utc_now
from utils.validation_utils import normalize_answer, validate_answer

logger = get_logger(__name__)

MenuKeyboardFactory = Callable[[int], Optional[Dict[str, Any]]]


@dataclass
class DialogInput:
    """
    One inbound interaction routed to the active step.

    Exactly one of text / signal / pick is expected; an empty input
    (e.g. a sticker) has none and is rejected by data steps.
    """
    text: Optional[str] = None
    signal: Optional[Signal] = None
    target: Optional[WizardName] = None  # wizard a confirm button belongs to
    pick: Optional[str] = None  # quick-pick code

    @classmethod
    def from_text(cls, text: Optional[str]) -> "DialogInput":
        return cls(text=text)

    @classmethod
    def confirm(cls, target: WizardName) -> "DialogInput":
        return cls(signal=Signal.CONFIRM, target=target)

    @classmethod
    def cancel(cls) -> "DialogInput":
        return cls(signal=Signal.CANCEL)

    @classmethod
    def from_pick(cls, code: str) -> "DialogInput":
        return cls(pick=code)


@dataclass
class DialogSession:
    conversation_id: int
    wizard_name: WizardName
    step_index: int = 0
    fields: Dict[str, str] = field(default_factory=dict)
    username: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    last_interaction: datetime = field(default_factory=utc_now)


class DialogEngine:
    """
    Runs named wizards, one active session per conversation.

    Entering a wizard while another session is active discards the old
    session silently. Sessions live in memory only.
    """

    def __init__(
        self,
        menu_keyboard: MenuKeyboardFactory,
        session_timeout_minutes: int = 30,
        max_field_length: int = 1000,
    ):
        self._wizards: Dict[WizardName, WizardDefinition] = {}
        self._sessions: Dict[int, DialogSession] = {}
        self._menu_keyboard = menu_keyboard
        self.session_timeout_minutes = session_timeout_minutes
        self.max_field_length = max_field_length

    def register(self, wizard: WizardDefinition) -> None:
        self._wizards[wizard.name] = wizard

    def get_wizard(self, name: WizardName) -> WizardDefinition:
        try:
            return self._wizards[WizardName(name)]
        except (KeyError, ValueError):
            raise UnknownWizardError(str(name))

    # ------------------------------------------------------------
    # Session table
    # ------------------------------------------------------------

    def get_session(self, conversation_id: int) -> Optional[DialogSession]:
        """Returns the live session, without expiry checks."""
        return self._sessions.get(conversation_id)

    def has_session(self, conversation_id: int) -> bool:
        return conversation_id in self._sessions

    def discard(self, conversation_id: int) -> Optional[DialogSession]:
        """Removes a session without replying."""
        return self._sessions.pop(conversation_id, None)

    def evict_expired(self, now: Optional[datetime] = None) -> int:
        """Drops every idle session; returns how many were removed."""
        expired = [
            conversation_id
            for conversation_id, session in self._sessions.items()
            if is_session_expired(session.last_interaction, self.session_timeout_minutes, now)
        ]
        for conversation_id in expired:
            del self._sessions[conversation_id]
        if expired:
            logger.info(f"Evicted {len(expired)} idle dialog session(s)")
        return len(expired)

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------

    def enter(self, wizard_name: WizardName, conversation_id: int, username: Optional[str] = None) -> Dict[str, Any]:
        """
        Starts a wizard for the conversation and returns the first prompt.
        """
        wizard = self.get_wizard(wizard_name)
        previous = self._sessions.pop(conversation_id, None)
        if previous is not None:
            logger.info(
                f"Discarding {previous.wizard_name.value} at step {previous.step_index}",
                extra={"user_id": conversation_id},
            )

        session = DialogSession(
            conversation_id=conversation_id,
            wizard_name=wizard.name,
            username=username,
        )
        self._sessions[conversation_id] = session

        with LogContext(user_id=conversation_id, wizard=wizard.name.value, step=0):
            logger.info("Dialog started")
        return self._render_step(wizard, session)

    async def advance(self, conversation_id: int, dialog_input: DialogInput) -> Optional[Dict[str, Any]]:
        """
        Routes input to the current step of the conversation's session.

        Returns:
            The reply to send, or None if no session is active

        Raises:
            IntakeBotError: Propagated from the completion action; the
                session stays on the review step so confirm can be retried
        """
        session = self._sessions.get(conversation_id)
        if session is None:
            return None

        if is_session_expired(session.last_interaction, self.session_timeout_minutes):
            self._sessions.pop(conversation_id, None)
            logger.info("Dialog session expired", extra={"user_id": conversation_id})
            return create_text_message(SESSION_EXPIRED_MESSAGE, self._menu_keyboard(conversation_id))

        if dialog_input.signal == Signal.CANCEL:
            return self.cancel(conversation_id)

        session.last_interaction = utc_now()
        wizard = self.get_wizard(session.wizard_name)

        with LogContext(user_id=conversation_id, wizard=wizard.name.value, step=session.step_index):
            if session.step_index >= wizard.review_index:
                return await self._handle_review(wizard, session, dialog_input)
            return self._handle_data_step(wizard, session, dialog_input)

    def cancel(self, conversation_id: int) -> Dict[str, Any]:
        """
        Ends the session unconditionally and returns the acknowledgment
        with the main menu.
        """
        session = self._sessions.pop(conversation_id, None)
        if session is not None:
            logger.info(
                f"Dialog {session.wizard_name.value} cancelled at step {session.step_index}",
                extra={"user_id": conversation_id},
            )
        return create_text_message(CANCELLED_MESSAGE, self._menu_keyboard(conversation_id))

    # ------------------------------------------------------------
    # Step handling
    # ------------------------------------------------------------

    def _handle_data_step(self, wizard: WizardDefinition, session: DialogSession, dialog_input: DialogInput) -> Dict[str, Any]:
        step = wizard.get_step(session.step_index)

        if dialog_input.pick is not None:
            label = step.quick_picks.get(dialog_input.pick)
            if label is None:
                logger.debug(f"Ignoring stale quick pick {dialog_input.pick}")
                return self._render_step(wizard, session, error=TEXT_REQUIRED_MESSAGE)
            answer = label
        else:
            is_valid, error = validate_answer(dialog_input.text, self.max_field_length)
            if not is_valid:
                logger.debug(f"Rejected answer for {step.key}: {error}")
                message = (
                    TEXT_TOO_LONG_MESSAGE.format(limit=self.max_field_length)
                    if error == "too_long"
                    else TEXT_REQUIRED_MESSAGE
                )
                return self._render_step(wizard, session, error=message)
            answer = normalize_answer(dialog_input.text)

        session.fields[step.key] = answer
        session.step_index += 1
        logger.info(f"Collected {step.key}")

        if session.step_index >= wizard.review_index:
            return self._render_review(wizard, session)
        return self._render_step(wizard, session)

    async def _handle_review(self, wizard: WizardDefinition, session: DialogSession, dialog_input: DialogInput) -> Dict[str, Any]:
        if dialog_input.signal != Signal.CONFIRM or dialog_input.target != wizard.name:
            # Anything but the two review buttons: show them again
            return self._render_review(wizard, session, note=REVIEW_CHOOSE_MESSAGE)

        reply = await wizard.on_complete(session)
        self._sessions.pop(session.conversation_id, None)
        logger.info("Dialog completed")
        return reply

    def _render_step(self, wizard: WizardDefinition, session: DialogSession, error: Optional[str] = None) -> Dict[str, Any]:
        step = wizard.get_step(session.step_index)
        parts = []
        if error:
            parts.append(error)
        parts.append(get_progress_message(session.step_index, wizard.total_steps))
        parts.append(step.prompt)
        return create_text_message("\n\n".join(parts), cancel_keyboard(step.quick_picks))

    def _render_review(self, wizard: WizardDefinition, session: DialogSession, note: Optional[str] = None) -> Dict[str, Any]:
        if note:
            text = f"{note}\n\n" + wizard.render_review(session.fields, MAX_MESSAGE_LENGTH - len(note) - 2)
        else:
            text = wizard.render_review(session.fields)
        return create_text_message(text, review_keyboard(wizard.confirm_label, wizard.confirm_callback))
