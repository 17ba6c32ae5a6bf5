"""
utils/telegram_utils.py

Purpose: Telegram message builders

- Constructs text and inline-keyboard payloads
- Abstracts Bot API reply_markup formatting
- Escaping of user-supplied text for HTML parse mode
"""

from html import escape
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from utils.constants import (
    BUTTON_ADMIN,
    BUTTON_APPROVE,
    BUTTON_BACK_TO_MENU,
    BUTTON_CANCEL,
    BUTTON_DECLINE,
    BUTTON_HELP,
    BUTTON_JOIN,
    BUTTON_REPORT,
    BUTTON_SKIP_CASE,
    BUTTON_STATUS,
    BUTTON_TAKE_CASE,
    CB_APPROVE_PREFIX,
    CB_CANCEL,
    CB_CHECK_STATUS,
    CB_DECLINE_PREFIX,
    CB_GO_ADMIN,
    CB_GO_JOIN,
    CB_GO_REPORT,
    CB_MAIN_MENU,
    CB_PICK_PREFIX,
    CB_SHOW_HELP,
    CB_SKIP_CASE_PREFIX,
    CB_TAKE_CASE_PREFIX,
    MAX_CALLBACK_DATA_BYTES,
    MAX_MESSAGE_LENGTH,
)

Button = Tuple[str, str]

ELLIPSIS = "…"


def create_text_message(text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Creates a reply payload.

    Args:
        text: HTML-formatted message text
        reply_markup: Optional inline keyboard

    Returns:
        Reply dict consumed by the dispatcher
    """
    message: Dict[str, Any] = {"text": text}
    if reply_markup:
        message["reply_markup"] = reply_markup
    return message


def create_callback_answer(text: str, alert: bool = False) -> Dict[str, Any]:
    """
    Creates a reply that only answers the pressed button: a toast, or a
    modal alert when `alert` is set.
    """
    return {"alert" if alert else "toast": text}


def create_edit(text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Creates a reply that rewrites the message the pressed button belongs to.
    Without reply_markup the inline keyboard is removed.
    """
    edit: Dict[str, Any] = {"edit_text": text}
    if reply_markup:
        edit["edit_markup"] = reply_markup
    return edit


def create_inline_keyboard(rows: Sequence[Sequence[Button]]) -> Dict[str, Any]:
    """
    Creates an inline keyboard from rows of (label, callback_data) pairs.

    Example:
        create_inline_keyboard([[("Yes", "yes"), ("No", "no")]])
    """
    keyboard: List[List[Dict[str, str]]] = []
    for row in rows:
        buttons = []
        for label, data in row:
            if len(data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
                raise ValueError(f"callback_data too long: {data!r}")
            buttons.append({"text": label, "callback_data": data})
        if buttons:
            keyboard.append(buttons)
    return {"inline_keyboard": keyboard}


def keyboard_callbacks(reply_markup: Optional[Dict[str, Any]]) -> List[str]:
    """Flattens an inline keyboard into its callback identifiers."""
    if not reply_markup:
        return []
    return [
        button["callback_data"]
        for row in reply_markup.get("inline_keyboard", [])
        for button in row
        if "callback_data" in button
    ]


def main_menu_keyboard(is_admin: bool = False) -> Dict[str, Any]:
    rows: List[List[Button]] = [
        [(BUTTON_JOIN, CB_GO_JOIN)],
        [(BUTTON_REPORT, CB_GO_REPORT)],
        [(BUTTON_STATUS, CB_CHECK_STATUS)],
        [(BUTTON_HELP, CB_SHOW_HELP)],
    ]
    if is_admin:
        rows.append([(BUTTON_ADMIN, CB_GO_ADMIN)])
    return create_inline_keyboard(rows)


def back_to_menu_keyboard() -> Dict[str, Any]:
    return create_inline_keyboard([[(BUTTON_BACK_TO_MENU, CB_MAIN_MENU)]])


def cancel_keyboard(quick_picks: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Keyboard shown under every dialog prompt: optional quick picks, then cancel."""
    rows: List[List[Button]] = []
    if quick_picks:
        picks = [(label, f"{CB_PICK_PREFIX}{code}") for code, label in quick_picks.items()]
        rows.extend(picks[i:i + 2] for i in range(0, len(picks), 2))
    rows.append([(BUTTON_CANCEL, CB_CANCEL)])
    return create_inline_keyboard(rows)


def review_keyboard(confirm_label: str, confirm_data: str) -> Dict[str, Any]:
    return create_inline_keyboard([
        [(confirm_label, confirm_data)],
        [(BUTTON_CANCEL, CB_CANCEL)],
    ])


def application_review_keyboard(user_id: int) -> Dict[str, Any]:
    return create_inline_keyboard([
        [(BUTTON_APPROVE, f"{CB_APPROVE_PREFIX}{user_id}")],
        [(BUTTON_DECLINE, f"{CB_DECLINE_PREFIX}{user_id}")],
    ])


def pending_applications_keyboard(user_ids: Iterable[int], limit: int = 10) -> Optional[Dict[str, Any]]:
    rows = [
        [
            (f"✅ {user_id}", f"{CB_APPROVE_PREFIX}{user_id}"),
            (f"❌ {user_id}", f"{CB_DECLINE_PREFIX}{user_id}"),
        ]
        for user_id in list(user_ids)[:limit]
    ]
    rows.append([(BUTTON_BACK_TO_MENU, CB_MAIN_MENU)])
    return create_inline_keyboard(rows)


def take_case_keyboard(requester_id: int) -> Dict[str, Any]:
    return create_inline_keyboard([
        [(BUTTON_TAKE_CASE, f"{CB_TAKE_CASE_PREFIX}{requester_id}")],
        [(BUTTON_SKIP_CASE, f"{CB_SKIP_CASE_PREFIX}{requester_id}")],
    ])


def escape_html(value: Any) -> str:
    """Escapes user-supplied text for HTML parse mode."""
    return escape(str(value), quote=False)


def display_username(username: Optional[str], fallback: str = "hidden") -> str:
    """Renders a Telegram handle as @name, or a placeholder when absent."""
    if not username:
        return fallback
    return f"@{escape_html(username.lstrip('@'))}"


def fit_message(lines: Sequence[str], overflow_template: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Joins lines, dropping trailing ones so the text fits Telegram's limit.

    Args:
        lines: Lines to join with newlines, header first
        overflow_template: Format string with {count} for the dropped lines
        limit: Maximum message length
    """
    text = "\n".join(lines)
    if len(text) <= limit:
        return text

    kept = list(lines)
    while kept:
        kept.pop()
        dropped = len(lines) - len(kept)
        candidate = "\n".join([*kept, overflow_template.format(count=dropped)])
        if len(candidate) <= limit:
            return candidate
    return overflow_template.format(count=len(lines))[:limit]


def clip_escaped(value: Any, budget: int) -> str:
    """
    HTML-escapes `value` and cuts it to at most `budget` characters,
    never inside an entity. A cut value ends with an ellipsis.
    """
    escaped = escape_html(value)
    if len(escaped) <= budget:
        return escaped
    if budget <= 0:
        return ""

    pieces = []
    used = 0
    for char in str(value):
        piece = escape_html(char)
        if used + len(piece) > budget - len(ELLIPSIS):
            break
        pieces.append(piece)
        used += len(piece)
    return "".join(pieces) + ELLIPSIS


def _share_budget(lengths: Dict[str, int], total: int) -> Dict[str, int]:
    # Short values keep their full length; the rest split what is left evenly
    budgets: Dict[str, int] = {}
    remaining = max(total, 0)
    ordered = sorted(lengths.items(), key=lambda item: item[1])
    for position, (key, length) in enumerate(ordered):
        share = remaining // (len(ordered) - position)
        budgets[key] = min(length, share)
        remaining -= budgets[key]
    return budgets


def fit_fields(
    template: str,
    fields: Dict[str, Any],
    limit: int = MAX_MESSAGE_LENGTH,
    **fixed: Any,
) -> str:
    """
    Fills a template with user-supplied fields, escaped for HTML.

    When the result would exceed `limit`, the longest fields are shortened
    until it fits. Values in `fixed` are inserted unchanged.

    Example:
        fit_fields("Nick: {nick}", {"nick": "<neo>"}) -> "Nick: &lt;neo&gt;"
    """
    escaped = {key: escape_html(value) for key, value in fields.items()}
    text = template.format(**fixed, **escaped)
    if len(text) <= limit:
        return text

    overhead = len(template.format(**fixed, **{key: "" for key in fields}))
    budgets = _share_budget({key: len(value) for key, value in escaped.items()}, limit - overhead)
    return template.format(
        **fixed,
        **{key: clip_escaped(value, budgets[key]) for key, value in fields.items()},
    )


def annotate_message(original: Optional[str], suffix: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Re-renders a plain-text message with an HTML suffix appended, within `limit`."""
    return clip_escaped(original or "", limit - len(suffix)) + suffix
