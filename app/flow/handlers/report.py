"""
app/flow/handlers/report.py

Handles: Report wizard – SOS signal

- Steps: location -> issue -> contact -> review
- The issue step offers crime-type quick picks; free text still works
- On confirm: broadcasts the signal to the administrator and every
  approved defender; nothing is stored
"""

from typing import Any, Callable, Dict

from app.core.logging import get_logger
from app.flow.engine import DialogSession
from app.flow.states import StepDefinition, WizardDefinition, WizardName
from app.models.applicant import ApplicantStatus
from app.models.help_signal import HelpSignal
from app.services.applicant_service import ApplicantStore
from app.services.notification_service import NotificationRouter
from utils.constants import (
    BUTTON_SEND_SIGNAL,
    CB_CONFIRM_REPORT,
    CRIME_TYPE_CHOICES,
    REGION_CHOICES,
    REPORT_CONTACT_PROMPT,
    REPORT_ISSUE_PROMPT,
    REPORT_LOCATION_PROMPT,
    REPORT_REVIEW_MESSAGE,
    REPORT_SENT_MESSAGE,
)
from utils.telegram_utils import create_text_message

logger = get_logger(__name__)

REPORT_STEPS = [
    StepDefinition(
        key="location",
        prompt=REPORT_LOCATION_PROMPT,
        quick_picks=REGION_CHOICES,
    ),
    StepDefinition(key="issue", prompt=REPORT_ISSUE_PROMPT, quick_picks=CRIME_TYPE_CHOICES),
    StepDefinition(key="contact", prompt=REPORT_CONTACT_PROMPT),
]


def build_report_wizard(
    store: ApplicantStore,
    router: NotificationRouter,
    menu_keyboard: Callable[[int], Dict[str, Any]],
) -> WizardDefinition:
    """
    Wires the report wizard to the volunteer lookup and the broadcast.
    """

    async def complete_report(session: DialogSession) -> Dict[str, Any]:
        signal = HelpSignal.from_fields(session.conversation_id, session.fields, session.username)

        volunteers = await store.find_by_status(ApplicantStatus.APPROVED)
        result = await router.broadcast_help_signal(signal, [v.user_id for v in volunteers])

        logger.info(
            f"Help signal {signal.signal_id} delivered to {len(result.delivered)}/{result.attempted}",
            extra={"user_id": signal.user_id},
        )
        return create_text_message(
            REPORT_SENT_MESSAGE.format(signal_id=signal.signal_id, count=len(result.delivered)),
            menu_keyboard(signal.user_id),
        )

    return WizardDefinition(
        name=WizardName.REPORT,
        steps=REPORT_STEPS,
        review_template=REPORT_REVIEW_MESSAGE,
        confirm_label=BUTTON_SEND_SIGNAL,
        confirm_callback=CB_CONFIRM_REPORT,
        on_complete=complete_report,
    )
