"""
app/flow/states.py

Purpose: Defines the dialog wizards

- Wizard names and their ordered steps
- Metadata for each step (field key, prompt, quick picks)
- Review step rendering and confirm affordance
- Progress messages ("Step 2 of 5")
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING
from dataclasses import dataclass, field

from utils.constants import MAX_MESSAGE_LENGTH, STEP_PROGRESS
from utils.telegram_utils import fit_fields

if TYPE_CHECKING:
    from app.flow.engine import DialogSession


class WizardName(str, Enum):
    """
    Names of the guided dialogs. Exactly one may be active per conversation.
    """
    JOIN = "JOIN_WIZARD"
    REPORT = "REPORT_WIZARD"


class Signal(str, Enum):
    """Non-text inputs a dialog understands."""
    CONFIRM = "confirm"
    CANCEL = "cancel"


@dataclass
class StepDefinition:
    """
    One data-collecting step: the answer is stored under `key`.
    """
    key: str
    prompt: str
    quick_picks: Dict[str, str] = field(default_factory=dict)  # code -> label


CompletionHandler = Callable[["DialogSession"], Awaitable[Dict[str, Any]]]


@dataclass
class WizardDefinition:
    """
    A named, fixed sequence of data steps followed by a review step.

    The review step index equals len(steps); confirming there runs
    `on_complete`, which persists and/or notifies and returns the final reply.
    """
    name: WizardName
    steps: List[StepDefinition]
    review_template: str
    confirm_label: str
    confirm_callback: str
    on_complete: CompletionHandler

    @property
    def review_index(self) -> int:
        return len(self.steps)

    @property
    def total_steps(self) -> int:
        # data steps plus the review step
        return len(self.steps) + 1

    def render_review(self, fields: Mapping[str, str], limit: int = MAX_MESSAGE_LENGTH) -> str:
        """Review text with every answer escaped, shortened to fit `limit` if needed."""
        return fit_fields(
            self.review_template,
            {step.key: fields.get(step.key, "") for step in self.steps},
            limit,
        )

    def get_step(self, index: int) -> Optional[StepDefinition]:
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None


def get_progress_message(step_index: int, total_steps: int) -> str:
    """
    Generates a progress line for a 0-based step index.

    Returns:
        Progress message (e.g., "Step 3 of 5")
    """
    return STEP_PROGRESS.format(current=step_index + 1, total=total_steps)
