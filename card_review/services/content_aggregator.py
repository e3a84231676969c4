"""
PR Content Aggregator component.

Builds the code context of one pull request from the changed files of its
latest iteration. Binary blobs (content with a NUL byte) and files that
cannot be read are left out without failing the pull request.
"""

from typing import Optional, Union

from card_review.errors import AggregationError, DevOpsApiError, PRNotFound
from card_review.models.analysis import (
    CodeContext,
    FileSkipReason,
    FileSnippet,
    ReviewSkipped,
    SkippedFile,
    SkipReason,
)
from card_review.services.devops_client import DevOpsClient
from card_review.utils.logging import get_logger
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)


def decode_blob(content: bytes) -> Optional[str]:
    """
    Decode blob bytes as text.

    Args:
        content: Raw blob bytes

    Returns:
        Decoded text, or None if the content is binary
    """
    text = content.decode("utf-8", errors="replace")
    if "\0" in text:
        return None
    return text


class ContentAggregator:
    """Aggregates the readable changed files of a pull request."""

    def __init__(self, devops: DevOpsClient, metrics: Optional[RunMetrics] = None):
        self.devops = devops
        self.metrics = metrics

    async def aggregate(self, pr_id: int) -> Union[CodeContext, ReviewSkipped]:
        """
        Build the code context of a pull request's latest iteration.

        Args:
            pr_id: Pull request ID

        Returns:
            CodeContext with at least one file, or ReviewSkipped when the PR
            has no iterations or no readable code

        Raises:
            PRNotFound: If the platform returns no pull request record
            AggregationError: If listing iterations or changes fails
            DevOpsApiError: If reading the PR metadata fails
        """
        pr_logger = logger.with_context(pr_id=pr_id, phase="aggregate")

        pr = await self.devops.get_pull_request(pr_id)
        if pr is None:
            raise PRNotFound(pr_id)

        pr_logger.info(f"Title: {pr.title}")
        pr_logger.info("Downloading files...")

        try:
            iteration_ids = await self.devops.get_iterations(pr.repository_id, pr_id, pr.project_name)
            if not iteration_ids:
                pr_logger.info("No iterations found")
                return ReviewSkipped(pr_id=pr_id, title=pr.title, reason=SkipReason.NO_ITERATIONS)

            latest_iteration = max(iteration_ids)
            changes = await self.devops.get_iteration_changes(
                pr.repository_id, pr_id, latest_iteration, pr.project_name
            )
        except DevOpsApiError as e:
            raise AggregationError(pr_id, pr.title, e) from e

        context = CodeContext(pr=pr, iteration_id=latest_iteration)

        for change in changes:
            if not change.is_reviewable or not change.object_id:
                continue

            path = change.path or change.object_id
            try:
                content = await self.devops.get_blob(pr.repository_id, change.object_id, pr.project_name)
            except Exception as e:
                pr_logger.warning(f"Error reading {path}: {e}")
                context.skipped_files.append(
                    SkippedFile(path=path, reason=FileSkipReason.READ_ERROR, detail=str(e))
                )
                continue

            text = decode_blob(content)
            if text is None:
                pr_logger.info(f"Binary file ignored: {path}")
                context.skipped_files.append(SkippedFile(path=path, reason=FileSkipReason.BINARY))
                continue

            context.files.append(FileSnippet(path=path, content=text))
            pr_logger.info(f"Read: {path}")

        if self.metrics is not None:
            self.metrics.record_files(read=len(context.files), skipped=len(context.skipped_files))

        if context.is_empty:
            pr_logger.info("No readable code")
            return ReviewSkipped(pr_id=pr_id, title=pr.title, reason=SkipReason.NO_READABLE_CODE)

        return context
