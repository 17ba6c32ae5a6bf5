"""
app/flow/handlers/join.py

Handles: Join wizard – become a defender

- Steps: region -> nick -> skills -> details -> review
- On confirm: upsert the applicant (status reset to pending)
- Notifies the administrator with approve / decline buttons
"""

from typing import Any, Callable, Dict

from app.core.logging import get_logger
from app.flow.engine import DialogSession
from app.flow.states import StepDefinition, WizardDefinition, WizardName
from app.services.applicant_service import ApplicantStore
from app.services.notification_service import NotificationRouter
from utils.constants import (
    BUTTON_SUBMIT,
    CB_CONFIRM_JOIN,
    JOIN_DETAILS_PROMPT,
    JOIN_NICK_PROMPT,
    JOIN_REGION_PROMPT,
    JOIN_REVIEW_MESSAGE,
    JOIN_SKILLS_PROMPT,
    JOIN_SUBMITTED_MESSAGE,
    REGION_CHOICES,
)
from utils.telegram_utils import create_text_message

logger = get_logger(__name__)

JOIN_STEPS = [
    StepDefinition(
        key="region",
        prompt=JOIN_REGION_PROMPT,
        quick_picks=REGION_CHOICES,
    ),
    StepDefinition(key="nick", prompt=JOIN_NICK_PROMPT),
    StepDefinition(key="skills", prompt=JOIN_SKILLS_PROMPT),
    StepDefinition(key="details", prompt=JOIN_DETAILS_PROMPT),
]


def build_join_wizard(
    store: ApplicantStore,
    router: NotificationRouter,
    menu_keyboard: Callable[[int], Dict[str, Any]],
) -> WizardDefinition:
    """
    Wires the join wizard to the record store and notification router.
    """

    async def complete_join(session: DialogSession) -> Dict[str, Any]:
        user_id = session.conversation_id
        fields = {**session.fields, "username": session.username}

        # A store failure propagates so the user learns nothing was saved
        record = await store.upsert(user_id, fields)

        outcome = await router.notify_new_application(record)
        if not outcome.delivered:
            logger.error(
                f"Application saved but admin notification failed: {outcome.error}",
                extra={"user_id": user_id},
            )

        return create_text_message(
            JOIN_SUBMITTED_MESSAGE.format(admin=router.admin_display),
            menu_keyboard(user_id),
        )

    return WizardDefinition(
        name=WizardName.JOIN,
        steps=JOIN_STEPS,
        review_template=JOIN_REVIEW_MESSAGE,
        confirm_label=BUTTON_SUBMIT,
        confirm_callback=CB_CONFIRM_JOIN,
        on_complete=complete_join,
    )
