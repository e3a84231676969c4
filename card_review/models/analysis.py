"""
Data models for code context and per pull request review outcomes.

Each pull request in a run ends in exactly one outcome: a verdict from the
generation service, an informational skip, or a recorded failure.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from card_review.models.pull_request import PullRequestInfo


FILE_BOUNDARY = "--- FILE: {path} ---"


class FileSkipReason(str, Enum):
    """Why a changed file was left out of the code context."""

    BINARY = "binary"
    READ_ERROR = "read_error"


class FileSnippet(BaseModel):
    """Decoded text of one changed file."""

    path: str
    content: str


class SkippedFile(BaseModel):
    """Changed file that could not be included."""

    path: str
    reason: FileSkipReason
    detail: Optional[str] = None


class CodeContext(BaseModel):
    """Ordered textual content of one pull request's changed files."""

    pr: PullRequestInfo
    iteration_id: int
    files: List[FileSnippet] = Field(default_factory=list)
    skipped_files: List[SkippedFile] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files

    @property
    def text(self) -> str:
        """Concatenate files in entry order, each behind a boundary line."""
        parts = []
        for snippet in self.files:
            parts.append(f"\n{FILE_BOUNDARY.format(path=snippet.path)}\n{snippet.content}\n")
        return "".join(parts)


class SkipReason(str, Enum):
    """Terminal states of a pull request that are not failures."""

    NO_ITERATIONS = "no_iterations"
    NO_READABLE_CODE = "no_readable_code"


class ReviewSuccess(BaseModel):
    """Verdict returned by the generation service for one pull request."""

    kind: Literal["success"] = "success"
    pr_id: int
    title: str
    analysis: str


class ReviewSkipped(BaseModel):
    """Pull request with nothing to analyze."""

    kind: Literal["skipped"] = "skipped"
    pr_id: int
    title: str
    reason: SkipReason


class ReviewFailed(BaseModel):
    """Pull request whose pipeline raised; rendered as an error fragment."""

    kind: Literal["failed"] = "failed"
    pr_id: int
    title: Optional[str] = None
    phase: str
    error_type: str
    message: str


PROutcome = Annotated[
    Union[ReviewSuccess, ReviewSkipped, ReviewFailed],
    Field(discriminator="kind"),
]
