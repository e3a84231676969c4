"""
Exception hierarchy for the card review pipeline.

Resolution errors and update failures end a run. Everything raised while a
single pull request is being processed is caught by the report composer and
turned into a report fragment instead.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from card_review.models.report import Report


class CardReviewError(Exception):
    """Base exception for card review errors."""
    pass


class ConfigurationError(CardReviewError):
    """Required settings are missing or invalid."""
    pass


class DevOpsApiError(CardReviewError):
    """An Azure DevOps SDK call failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class ResolutionError(CardReviewError):
    """The work item / pull request link graph could not be resolved."""
    pass


class NotLinked(ResolutionError):
    """A pull request references no work item."""

    def __init__(self, pr_id: int):
        self.pr_id = pr_id
        super().__init__(f"Pull request #{pr_id} is not linked to any work item")


class NoLinkedPRs(ResolutionError):
    """A work item has no pull request relations."""

    def __init__(self, work_item_id: int):
        self.work_item_id = work_item_id
        super().__init__(
            f"Work item #{work_item_id} has no pull request relations. "
            f"Check that its links really are pull requests."
        )


class PRNotFound(CardReviewError):
    """The platform returned no record for a pull request."""

    def __init__(self, pr_id: int):
        self.pr_id = pr_id
        super().__init__(f"Pull request #{pr_id} not found or not accessible")


class AggregationError(CardReviewError):
    """
    Reading a pull request's iterations or changes failed after its metadata was fetched.

    Carries the PR title so the error fragment can still name the PR.
    """

    def __init__(self, pr_id: int, title: str, cause: Exception):
        self.pr_id = pr_id
        self.title = title
        self.cause = cause
        super().__init__(str(cause))


class GenerationServiceError(CardReviewError):
    """The text-generation service failed to produce an analysis."""
    pass


class UpdateFailure(CardReviewError):
    """
    The composed report could not be written to the work item.

    The report is kept on the exception so the operator can retry only the write.
    """

    def __init__(
        self,
        work_item_id: int,
        field: str,
        message: str,
        report: Optional["Report"] = None,
    ):
        self.work_item_id = work_item_id
        self.field = field
        self.message = message
        self.report = report
        super().__init__(f"Could not update field {field} of work item #{work_item_id}: {message}")
