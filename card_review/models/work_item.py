"""Work item data models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


TITLE_FIELD = "System.Title"
DESCRIPTION_FIELD = "System.Description"
ACCEPTANCE_CRITERIA_FIELD = "Microsoft.VSTS.Common.AcceptanceCriteria"


class ReviewMode(str, Enum):
    """How the operator selected what to review."""

    PR = "pr"
    CARD = "card"

    @property
    def label(self) -> str:
        return "Single PR" if self is ReviewMode.PR else "Full card"


class RelationLink(BaseModel):
    """Typed link from a work item to another artifact."""

    rel: Optional[str] = None
    url: str


class WorkItem(BaseModel):
    """Work item (card) holding the requirements a PR is reviewed against."""

    id: int
    title: str = ""
    description: str = ""
    acceptance_criteria: str = ""
    relations: List[RelationLink] = []

    def requirements_text(self) -> str:
        """Render the requirements summary embedded in the review prompt."""
        return (
            f"TITLE: {self.title}\n"
            f"DESCRIPTION: {self.description}\n"
            f"ACCEPTANCE CRITERIA: {self.acceptance_criteria}"
        )


class ResolvedTarget(BaseModel):
    """Outcome of link resolution: what to review and where to write the verdict."""

    mode: ReviewMode
    work_item_id: int
    work_item_title: str = ""
    pr_ids: List[int]
    requirements_text: str
