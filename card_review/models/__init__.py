"""Data models for card review."""

from .analysis import (
    CodeContext,
    FileSkipReason,
    FileSnippet,
    PROutcome,
    ReviewFailed,
    ReviewSkipped,
    ReviewSuccess,
    SkippedFile,
    SkipReason,
)
from .pull_request import ChangeKind, IterationChange, PullRequestInfo
from .report import Report, render_outcome
from .work_item import RelationLink, ResolvedTarget, ReviewMode, WorkItem

__all__ = [
    # Work item models
    "ReviewMode",
    "RelationLink",
    "WorkItem",
    "ResolvedTarget",
    # Pull request models
    "ChangeKind",
    "IterationChange",
    "PullRequestInfo",
    # Analysis models
    "CodeContext",
    "FileSnippet",
    "SkippedFile",
    "FileSkipReason",
    "SkipReason",
    "ReviewSuccess",
    "ReviewSkipped",
    "ReviewFailed",
    "PROutcome",
    # Report models
    "Report",
    "render_outcome",
]
