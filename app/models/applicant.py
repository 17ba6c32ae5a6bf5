"""
app/models/applicant.py

Purpose: Applicant document model

- One record per Telegram user id
- Free-text answers from the join dialog
- Review status (pending / approved / rejected)
- Registration timestamp, immutable after creation
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from utils.time_utils import utc_now


class ApplicantStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Labels shown to the applicant by the status lookup
STATUS_LABELS: Dict[ApplicantStatus, str] = {
    ApplicantStatus.PENDING: "queued",
    ApplicantStatus.APPROVED: "accepted",
    ApplicantStatus.REJECTED: "declined",
}

# Text fields a join submission replaces on every upsert
APPLICANT_TEXT_FIELDS = ("region", "nick", "skills", "details")


class ApplicantRecord(BaseModel):
    """A persisted application to join as a defender."""

    user_id: int = Field(..., description="Telegram user id (unique key)")
    username: Optional[str] = Field(default=None, description="Telegram @handle at submission time")
    region: str = ""
    nick: str = ""
    skills: str = ""
    details: str = ""
    status: ApplicantStatus = ApplicantStatus.PENDING
    registered_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ApplicantRecord":
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls.model_validate(data)
