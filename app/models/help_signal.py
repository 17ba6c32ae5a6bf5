"""
app/models/help_signal.py

Purpose: Help request payload

- Built from the report dialog answers
- Consumed immediately by the notification router
- Never persisted
"""

import secrets
from typing import Mapping, Optional

from pydantic import BaseModel, Field


def generate_signal_id() -> str:
    """Short human reference, e.g. ID-4821."""
    return f"ID-{1000 + secrets.randbelow(9000)}"


class HelpSignal(BaseModel):
    user_id: int
    location: str
    issue: str
    contact: str
    username: Optional[str] = None
    signal_id: str = Field(default_factory=generate_signal_id)

    @classmethod
    def from_fields(cls, user_id: int, fields: Mapping[str, str], username: Optional[str] = None) -> "HelpSignal":
        return cls(
            user_id=user_id,
            username=username,
            location=fields["location"],
            issue=fields["issue"],
            contact=fields["contact"],
        )
