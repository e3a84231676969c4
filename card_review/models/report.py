"""
Consolidated review report written to the work item.

The report is an ordered list of per pull request outcomes. Rendering turns
it into the HTML stored in the work item field; untrusted text (titles,
model output, error messages) is always escaped.
"""

from datetime import datetime
from html import escape
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from card_review.models.analysis import (
    PROutcome,
    ReviewFailed,
    ReviewSkipped,
    ReviewSuccess,
    SkipReason,
)
from card_review.models.work_item import ReviewMode


UNKNOWN_TITLE = "unknown"

_SKIP_MESSAGES = {
    SkipReason.NO_ITERATIONS: "No iterations found.",
    SkipReason.NO_READABLE_CODE: "No readable code.",
}


def _multiline(text: str) -> str:
    return escape(text).replace("\n", "<br>")


def render_outcome(outcome: PROutcome) -> str:
    """Render one self-contained report fragment tagged with its PR id."""
    title = escape(outcome.title or UNKNOWN_TITLE)

    if isinstance(outcome, ReviewSuccess):
        return (
            f'<div data-pr-id="{outcome.pr_id}" '
            f'style="margin-bottom: 20px; border-bottom: 1px solid #ccc; padding-bottom: 10px;">'
            f"<h3>Analysis PR #{outcome.pr_id}: {title}</h3>"
            f"{_multiline(outcome.analysis)}"
            f"</div>"
        )

    if isinstance(outcome, ReviewSkipped):
        return (
            f'<div data-pr-id="{outcome.pr_id}">'
            f"<h3>PR #{outcome.pr_id}: {title}</h3>"
            f"<p><em>{_SKIP_MESSAGES[outcome.reason]}</em></p>"
            f"<hr></div>"
        )

    if isinstance(outcome, ReviewFailed):
        return (
            f'<div data-pr-id="{outcome.pr_id}">'
            f"<h3>PR #{outcome.pr_id}: {title}</h3>"
            f'<p style="color:red">Error analyzing PR #{outcome.pr_id} '
            f"during {escape(outcome.phase)} ({escape(outcome.error_type)}): "
            f"{_multiline(outcome.message)}</p>"
            f"</div>"
        )

    raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")


class Report(BaseModel):
    """Ordered, immutable sequence of per pull request outcomes."""

    model_config = ConfigDict(frozen=True)

    mode: ReviewMode
    work_item_id: int
    generated_at: datetime
    outcomes: List[PROutcome]

    @property
    def pr_ids(self) -> List[int]:
        return [outcome.pr_id for outcome in self.outcomes]

    def fragments(self) -> List[str]:
        return [render_outcome(outcome) for outcome in self.outcomes]

    def render_header(self) -> str:
        return (
            f"<h2>AI Review Report ({self.mode.label})</h2>"
            f"<p>Date: {self.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}</p>"
            f"<hr>"
        )

    def render_html(self) -> str:
        """Render header and fragments in outcome order."""
        return self.render_header() + "".join(self.fragments())

    def count(self, kind: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.kind == kind)

    def failed_outcomes(self) -> List[ReviewFailed]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, ReviewFailed)]

    def outcome_for(self, pr_id: int) -> Optional[PROutcome]:
        for outcome in self.outcomes:
            if outcome.pr_id == pr_id:
                return outcome
        return None
