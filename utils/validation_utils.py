"""
utils/validation_utils.py

Purpose: Input validation

- Dialog answer shape checks
- Numeric identifier parsing for callback payloads
- Input normalization
"""

import re
from typing import Optional, Tuple

_NUMERIC_ID = re.compile(r"^-?\d{1,20}$")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def normalize_answer(text: Optional[str]) -> str:
    """
    Strips control characters and surrounding whitespace.
    Inner line breaks are kept, they matter in free-form descriptions.
    """
    if not text:
        return ""
    return _CONTROL_CHARS.sub("", text).strip()


def validate_answer(text: Optional[str], max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validates a free-text dialog answer.

    Args:
        text: Raw message text (None for non-text messages)
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_code) where error_code is "missing" or "too_long"
    """
    value = normalize_answer(text)
    if not value:
        return False, "missing"
    if len(value) > max_length:
        return False, "too_long"
    return True, None


def parse_numeric_id(value: Optional[str]) -> Optional[int]:
    """
    Parses a Telegram numeric identifier.

    Returns:
        The integer id, or None if value is not a plain integer
    """
    if value is None or not _NUMERIC_ID.match(value):
        return None
    return int(value)


def is_command(text: Optional[str]) -> bool:
    return bool(text) and text.startswith("/")


def parse_command(text: str) -> str:
    """
    Extracts the bare command name: "/start@my_bot arg" -> "start".
    """
    head = text.split()[0] if text.split() else ""
    return head.lstrip("/").split("@", 1)[0].lower()
