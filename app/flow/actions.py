"""
app/flow/actions.py

Purpose: Typed callback actions

- Decodes button callback_data once, at the boundary
- Parameterized payloads (adm_ok_<id>, w_take_<id>, w_skip_<id>, ...) become typed descriptors
- Unknown or malformed payloads decode to None
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from app.flow.states import WizardName
from utils.constants import (
    CB_APPROVE_PREFIX,
    CB_CANCEL,
    CB_CHECK_STATUS,
    CB_CONFIRM_JOIN,
    CB_CONFIRM_REPORT,
    CB_DECLINE_PREFIX,
    CB_GO_ADMIN,
    CB_GO_JOIN,
    CB_GO_REPORT,
    CB_MAIN_MENU,
    CB_PICK_PREFIX,
    CB_SHOW_HELP,
    CB_SKIP_CASE_PREFIX,
    CB_TAKE_CASE_PREFIX,
)
from utils.validation_utils import parse_numeric_id


class MenuCommand(str, Enum):
    JOIN = CB_GO_JOIN
    REPORT = CB_GO_REPORT
    STATUS = CB_CHECK_STATUS
    ADMIN = CB_GO_ADMIN
    CANCEL = CB_CANCEL
    HELP = CB_SHOW_HELP
    MAIN_MENU = CB_MAIN_MENU


@dataclass(frozen=True)
class MenuAction:
    command: MenuCommand


@dataclass(frozen=True)
class ConfirmAction:
    wizard: WizardName


@dataclass(frozen=True)
class PickAction:
    code: str


@dataclass(frozen=True)
class ApproveAction:
    user_id: int


@dataclass(frozen=True)
class DeclineAction:
    user_id: int


@dataclass(frozen=True)
class TakeCaseAction:
    requester_id: int


@dataclass(frozen=True)
class SkipCaseAction:
    requester_id: int


Action = Union[
    MenuAction, ConfirmAction, PickAction, ApproveAction, DeclineAction, TakeCaseAction, SkipCaseAction,
]

_CONFIRMS = {
    CB_CONFIRM_JOIN: WizardName.JOIN,
    CB_CONFIRM_REPORT: WizardName.REPORT,
}

_PARAMETERIZED = (
    (CB_APPROVE_PREFIX, ApproveAction),
    (CB_DECLINE_PREFIX, DeclineAction),
    (CB_TAKE_CASE_PREFIX, TakeCaseAction),
    (CB_SKIP_CASE_PREFIX, SkipCaseAction),
)


def decode_action(data: Optional[str]) -> Optional[Action]:
    """
    Decodes a callback payload.

    Examples:
        "go_join"      -> MenuAction(MenuCommand.JOIN)
        "adm_ok_42"    -> ApproveAction(42)
        "w_take_7"     -> TakeCaseAction(7)
        "w_skip_7"     -> SkipCaseAction(7)
        "adm_ok_abc"   -> None
    """
    if not data:
        return None

    try:
        return MenuAction(MenuCommand(data))
    except ValueError:
        pass

    if data in _CONFIRMS:
        return ConfirmAction(_CONFIRMS[data])

    for prefix, action_type in _PARAMETERIZED:
        if data.startswith(prefix):
            identifier = parse_numeric_id(data[len(prefix):])
            return action_type(identifier) if identifier is not None else None

    if data.startswith(CB_PICK_PREFIX):
        code = data[len(CB_PICK_PREFIX):]
        return PickAction(code) if code else None

    return None
