"""
app/flow/handlers/cases.py

Handles: Defender responses to a broadcast help signal

- "Take this case" and "Decline" are allowed for the administrator and
  approved defenders
- Taking tells the requester (and the admin) who claimed the case
- Claims are not exclusive; several defenders may respond
- Declining only dismisses the defender's own copy of the signal
"""

from typing import Any, Dict

from app.core.exceptions import AuthorizationError
from app.core.logging import get_logger, LogContext
from app.flow.context import BotServices
from app.models.applicant import ApplicantStatus
from app.schemas.telegram import InboundEvent
from utils.constants import CASE_SKIPPED_MESSAGE, CASE_TAKEN_SUFFIX, CASE_TAKEN_TOAST, NOT_A_DEFENDER_MESSAGE
from utils.telegram_utils import annotate_message, create_callback_answer, create_edit

logger = get_logger(__name__)


async def _require_defender(services: BotServices, event: InboundEvent, requester_id: int) -> None:
    if services.is_admin(event.user_id):
        return
    record = await services.store.find_by_key(event.user_id)
    if record is None or record.status != ApplicantStatus.APPROVED:
        raise AuthorizationError(NOT_A_DEFENDER_MESSAGE, details={"requester_id": requester_id})


async def handle_take_case(services: BotServices, event: InboundEvent, requester_id: int) -> Dict[str, Any]:
    with LogContext(user_id=event.user_id, action="take_case"):
        await _require_defender(services, event, requester_id)

        outcomes = await services.router.notify_case_taken(requester_id, event.user_id, event.username)
        failed = [o.recipient_id for o in outcomes if not o.delivered]
        if failed:
            logger.warning(f"Case claim notice not delivered to {failed}")
        logger.info(f"Case of {requester_id} taken")

        reply = create_edit(annotate_message(event.message_text, CASE_TAKEN_SUFFIX))
        reply.update(create_callback_answer(CASE_TAKEN_TOAST))
        return reply


async def handle_skip_case(services: BotServices, event: InboundEvent, requester_id: int) -> Dict[str, Any]:
    with LogContext(user_id=event.user_id, action="skip_case"):
        await _require_defender(services, event, requester_id)
        logger.info(f"Case of {requester_id} declined")
        return create_edit(CASE_SKIPPED_MESSAGE)
