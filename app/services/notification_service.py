"""
app/services/notification_service.py

Purpose: Notification routing

- Delivers messages to one or many recipients, each attempt isolated
- Collects per-recipient outcomes instead of dropping failures silently
- Encodes who gets told what (admin, applicant, approved defenders, requester)
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.core.exceptions import DeliveryError, ExternalServiceError
from app.core.logging import get_logger
from app.models.applicant import ApplicantRecord
from app.models.help_signal import HelpSignal
from app.services.telegram_service import TelegramClient
from utils.constants import (
    APPROVED_NOTICE,
    CASE_TAKEN_ADMIN_NOTICE,
    CASE_TAKEN_NOTICE,
    DECLINED_NOTICE,
    HELP_SIGNAL_MESSAGE,
    NEW_APPLICATION_MESSAGE,
)
from utils.telegram_utils import (
    application_review_keyboard,
    display_username,
    fit_fields,
    take_case_keyboard,
)

logger = get_logger(__name__)


@dataclass
class DeliveryOutcome:
    recipient_id: int
    delivered: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BroadcastResult:
    outcomes: List[DeliveryOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def delivered(self) -> List[int]:
        return [o.recipient_id for o in self.outcomes if o.delivered]

    @property
    def failed(self) -> List[int]:
        return [o.recipient_id for o in self.outcomes if not o.delivered]


def unique_recipients(recipient_ids: Iterable[int]) -> List[int]:
    """Drops duplicates while keeping first-seen order."""
    seen = set()
    ordered = []
    for recipient_id in recipient_ids:
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        ordered.append(recipient_id)
    return ordered


class NotificationRouter:
    """
    Sends formatted messages through the Telegram client.

    broadcast() never raises; send_one() raises only for critical sends.
    """

    def __init__(self, client: TelegramClient, admin_id: int, admin_handle: Optional[str] = None):
        self.client = client
        self.admin_id = admin_id
        self.admin_handle = admin_handle

    @property
    def admin_display(self) -> str:
        return display_username(self.admin_handle, fallback="the administrator")

    async def _deliver(self, recipient_id: int, text: str, reply_markup: Optional[Dict[str, Any]]) -> DeliveryOutcome:
        try:
            message_id = await self.client.send_message(recipient_id, text, reply_markup=reply_markup)
        except ExternalServiceError as e:
            logger.warning(f"Delivery to {recipient_id} failed: {e.message}")
            return DeliveryOutcome(recipient_id, delivered=False, error=e.message)
        except Exception as e:
            logger.error(f"Unexpected delivery error for {recipient_id}: {e}", exc_info=True)
            return DeliveryOutcome(recipient_id, delivered=False, error=str(e))
        return DeliveryOutcome(recipient_id, delivered=True, message_id=message_id)

    async def broadcast(
        self,
        recipient_ids: Sequence[int],
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> BroadcastResult:
        """
        Sends the same message to every recipient independently.

        Returns:
            BroadcastResult with one outcome per unique recipient
        """
        recipients = unique_recipients(recipient_ids)
        outcomes = await asyncio.gather(
            *(self._deliver(recipient_id, text, reply_markup) for recipient_id in recipients)
        )
        result = BroadcastResult(list(outcomes))
        logger.info(
            f"Broadcast finished: {len(result.delivered)}/{result.attempted} delivered"
            + (f", failed for {result.failed}" if result.failed else "")
        )
        return result

    async def send_one(
        self,
        recipient_id: int,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
        *,
        critical: bool = False,
    ) -> DeliveryOutcome:
        """
        Sends a message to a single recipient.

        Args:
            critical: If True, a failed delivery raises DeliveryError

        Raises:
            DeliveryError: Only for critical sends
        """
        outcome = await self._deliver(recipient_id, text, reply_markup)
        if critical and not outcome.delivered:
            raise DeliveryError(recipient_id, outcome.error or "unknown error")
        return outcome

    # ------------------------------------------------------------
    # Business notifications
    # ------------------------------------------------------------

    async def notify_new_application(self, record: ApplicantRecord) -> DeliveryOutcome:
        """New application -> administrator only, with approve/decline buttons."""
        text = fit_fields(
            NEW_APPLICATION_MESSAGE,
            {"region": record.region, "nick": record.nick, "skills": record.skills, "details": record.details},
            username=display_username(record.username),
            user_id=record.user_id,
        )
        return await self.send_one(self.admin_id, text, application_review_keyboard(record.user_id))

    async def notify_approved(self, user_id: int) -> DeliveryOutcome:
        """Approval -> the applicant only."""
        return await self.send_one(user_id, APPROVED_NOTICE.format(admin=self.admin_display))

    async def notify_declined(self, user_id: int) -> DeliveryOutcome:
        return await self.send_one(user_id, DECLINED_NOTICE)

    async def broadcast_help_signal(self, signal: HelpSignal, volunteer_ids: Iterable[int]) -> BroadcastResult:
        """Help signal -> administrator plus every approved defender."""
        text = fit_fields(
            HELP_SIGNAL_MESSAGE,
            {"location": signal.location, "issue": signal.issue, "contact": signal.contact},
            signal_id=signal.signal_id,
            username=display_username(signal.username),
            user_id=signal.user_id,
        )
        recipients = [self.admin_id, *volunteer_ids] if self.admin_id else list(volunteer_ids)
        return await self.broadcast(recipients, text, take_case_keyboard(signal.user_id))

    async def notify_case_taken(
        self,
        requester_id: int,
        defender_id: int,
        defender_username: Optional[str],
    ) -> List[DeliveryOutcome]:
        """Claim -> requester, and the administrator (when configured) unless they claimed it."""
        defender = display_username(defender_username, fallback=f"#{defender_id}")
        outcomes = [
            await self.send_one(requester_id, CASE_TAKEN_NOTICE.format(defender=defender))
        ]
        if self.admin_id and defender_id != self.admin_id:
            outcomes.append(
                await self.send_one(
                    self.admin_id,
                    CASE_TAKEN_ADMIN_NOTICE.format(defender=defender, requester_id=requester_id),
                )
            )
        return outcomes
