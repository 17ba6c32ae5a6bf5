"""
app/flow/handlers/admin.py

Handles: Administrator actions

- Admin panel: application list with per-status counts
- Approve / decline of a single application, from its own message or
  from the panel
- Every action is checked against the configured admin id
"""

from typing import Any, Dict, Optional, Tuple

from app.core.exceptions import AuthorizationError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.flow.context import BotServices
from app.models.applicant import ApplicantStatus
from app.schemas.telegram import InboundEvent
from utils.constants import (
    ADMIN_EMPTY_MESSAGE,
    ADMIN_LIST_ENTRY,
    ADMIN_LIST_HEADER,
    ADMIN_LIST_TRUNCATED,
    ADMIN_ONLY_MESSAGE,
    ALREADY_APPROVED_MESSAGE,
    ALREADY_DECLINED_MESSAGE,
    APPLICANT_NOT_FOUND_MESSAGE,
    APPROVED_SUFFIX,
    APPROVED_TOAST,
    CB_MAIN_MENU,
    DECLINED_SUFFIX,
    DECLINED_TOAST,
)
from utils.telegram_utils import (
    annotate_message,
    back_to_menu_keyboard,
    clip_escaped,
    create_callback_answer,
    create_edit,
    create_text_message,
    fit_message,
    pending_applications_keyboard,
)

logger = get_logger(__name__)

# Listed nicks and regions are cut to this many characters
ADMIN_LIST_FIELD_LIMIT = 64


def _require_admin(services: BotServices, event: InboundEvent) -> None:
    if not services.is_admin(event.user_id):
        raise AuthorizationError(ADMIN_ONLY_MESSAGE, details={"user_id": event.user_id})


async def _render_panel(services: BotServices) -> Optional[Tuple[str, Dict[str, Any]]]:
    records = await services.store.list_all()
    if not records:
        return None

    counts = {status: 0 for status in ApplicantStatus}
    for record in records:
        counts[record.status] += 1

    lines = [
        ADMIN_LIST_HEADER.format(
            total=len(records),
            pending=counts[ApplicantStatus.PENDING],
            approved=counts[ApplicantStatus.APPROVED],
            rejected=counts[ApplicantStatus.REJECTED],
        ),
        "",
    ]
    lines.extend(
        ADMIN_LIST_ENTRY.format(
            user_id=record.user_id,
            nick=clip_escaped(record.nick, ADMIN_LIST_FIELD_LIMIT),
            region=clip_escaped(record.region, ADMIN_LIST_FIELD_LIMIT),
            label=record.status_label,
        )
        for record in records
    )

    pending = [r.user_id for r in records if r.status == ApplicantStatus.PENDING]
    logger.info(f"Admin panel: {len(records)} applications, {len(pending)} pending")
    return fit_message(lines, ADMIN_LIST_TRUNCATED), pending_applications_keyboard(pending)


async def handle_admin_panel(services: BotServices, event: InboundEvent) -> Dict[str, Any]:
    """
    Lists every application in storage order, with buttons for the pending ones.
    """
    _require_admin(services, event)

    with LogContext(user_id=event.user_id, action="admin_panel"):
        panel = await _render_panel(services)
        if panel is None:
            return create_text_message(ADMIN_EMPTY_MESSAGE, back_to_menu_keyboard())
        text, keyboard = panel
        return create_text_message(text, keyboard)


def _pressed_on_panel(event: InboundEvent) -> bool:
    # Only the panel keyboard carries the back-to-menu row
    return CB_MAIN_MENU in event.message_buttons


async def _decide(
    services: BotServices,
    event: InboundEvent,
    applicant_id: int,
    status: ApplicantStatus,
) -> Dict[str, Any]:
    _require_admin(services, event)

    approving = status == ApplicantStatus.APPROVED
    with LogContext(user_id=event.user_id, action="approve" if approving else "decline"):
        record = await services.store.find_by_key(applicant_id)
        if record is None:
            raise ResourceNotFoundError(APPLICANT_NOT_FOUND_MESSAGE, details={"applicant_id": applicant_id})

        if record.status == status:
            # Repeat press: no second notification
            return create_callback_answer(
                ALREADY_APPROVED_MESSAGE if approving else ALREADY_DECLINED_MESSAGE
            )

        await services.store.set_status(applicant_id, status)
        logger.info(f"Applicant {applicant_id} -> {status.value}")

        if approving:
            outcome = await services.router.notify_approved(applicant_id)
        else:
            outcome = await services.router.notify_declined(applicant_id)
        if not outcome.delivered:
            logger.warning(f"Applicant {applicant_id} was not told about the decision: {outcome.error}")

        if _pressed_on_panel(event):
            # Redraw the panel so the other pending rows keep their buttons
            text, keyboard = await _render_panel(services)
            reply = create_edit(text, keyboard)
            reply.update(create_callback_answer(
                (APPROVED_TOAST if approving else DECLINED_TOAST).format(user_id=applicant_id)
            ))
            return reply

        suffix = (APPROVED_SUFFIX if approving else DECLINED_SUFFIX).format(user_id=applicant_id)
        return create_edit(annotate_message(event.message_text, suffix))


async def handle_approve(services: BotServices, event: InboundEvent, applicant_id: int) -> Dict[str, Any]:
    return await _decide(services, event, applicant_id, ApplicantStatus.APPROVED)


async def handle_decline(services: BotServices, event: InboundEvent, applicant_id: int) -> Dict[str, Any]:
    return await _decide(services, event, applicant_id, ApplicantStatus.REJECTED)
