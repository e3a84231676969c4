"""
Report Composer component.

Drives aggregation and analysis for each pull request in turn and folds the
per pull request outcomes into one report. A pull request that fails becomes
an error fragment; the remaining pull requests are still processed.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from card_review.errors import AggregationError, GenerationServiceError, PRNotFound
from card_review.models.analysis import (
    PROutcome,
    ReviewFailed,
    ReviewSkipped,
    ReviewSuccess,
)
from card_review.models.report import Report
from card_review.models.work_item import ReviewMode
from card_review.services.analysis_invoker import AnalysisInvoker
from card_review.services.content_aggregator import ContentAggregator
from card_review.utils.logging import (
    LogContext,
    get_logger,
    log_error_with_context,
    log_phase_transition,
)
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]


class ReportComposer:
    """Builds the consolidated report for a set of pull requests."""

    def __init__(
        self,
        aggregator: ContentAggregator,
        invoker: AnalysisInvoker,
        metrics: Optional[RunMetrics] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.aggregator = aggregator
        self.invoker = invoker
        self.metrics = metrics
        self.progress = progress

    def _narrate(self, message: str) -> None:
        if self.progress is not None:
            self.progress(message)

    async def review_pull_request(self, pr_id: int, requirements_text: str) -> PROutcome:
        """
        Aggregate and analyze one pull request.

        Never raises for failures inside the pull request pipeline; they are
        returned as ReviewFailed.

        Args:
            pr_id: Pull request ID
            requirements_text: Work item requirements summary

        Returns:
            ReviewSuccess, ReviewSkipped or ReviewFailed
        """
        self._narrate(f"--- Starting analysis of PR #{pr_id} ---")

        with LogContext(logger, pr_id=pr_id):
            return await self._review(pr_id, requirements_text)

    async def _review(self, pr_id: int, requirements_text: str) -> PROutcome:
        log_phase_transition(logger, None, "aggregate", "started", pr_id=pr_id)

        try:
            aggregation = await self.aggregator.aggregate(pr_id)
        except PRNotFound as e:
            logger.warning(str(e), extra={"phase": "aggregate"})
            return ReviewFailed(
                pr_id=pr_id,
                phase="aggregate",
                error_type=type(e).__name__,
                message=str(e),
            )
        except AggregationError as e:
            log_error_with_context(logger, "Aggregation failed", e.cause, phase="aggregate")
            return ReviewFailed(
                pr_id=pr_id,
                title=e.title,
                phase="aggregate",
                error_type=type(e.cause).__name__,
                message=str(e.cause),
            )
        except Exception as e:
            log_error_with_context(logger, "Aggregation failed", e, phase="aggregate")
            return ReviewFailed(
                pr_id=pr_id,
                phase="aggregate",
                error_type=type(e).__name__,
                message=str(e),
            )

        if isinstance(aggregation, ReviewSkipped):
            return aggregation

        title = aggregation.pr.title
        self._narrate(f"PR #{pr_id}: {title} ({len(aggregation.files)} files), sending for analysis...")
        log_phase_transition(logger, None, "analyze", "started", pr_id=pr_id)

        try:
            analysis = await self.invoker.invoke(requirements_text, aggregation.text)
        except GenerationServiceError as e:
            logger.error(str(e), extra={"phase": "analyze"})
            return ReviewFailed(
                pr_id=pr_id,
                title=title,
                phase="analyze",
                error_type=type(e).__name__,
                message=str(e),
            )
        except Exception as e:
            log_error_with_context(logger, "Analysis failed", e, phase="analyze")
            return ReviewFailed(
                pr_id=pr_id,
                title=title,
                phase="analyze",
                error_type=type(e).__name__,
                message=str(e),
            )

        return ReviewSuccess(pr_id=pr_id, title=title, analysis=analysis)

    async def compose(
        self,
        pr_ids: Iterable[int],
        requirements_text: str,
        mode: ReviewMode,
        work_item_id: int,
    ) -> Report:
        """
        Review every pull request in order and assemble the report.

        Args:
            pr_ids: Pull request IDs in review order
            requirements_text: Work item requirements summary
            mode: Operating mode shown in the report header
            work_item_id: Work item the report belongs to

        Returns:
            Report with exactly one outcome per pull request, in input order
        """
        generated_at = datetime.now(timezone.utc)
        outcomes: List[PROutcome] = []

        log_phase_transition(logger, work_item_id, "compose", "started")

        for pr_id in pr_ids:
            outcome = await self.review_pull_request(pr_id, requirements_text)
            outcomes.append(outcome)

            if self.metrics is not None:
                self.metrics.record_outcome(outcome.kind)
            self._narrate(f"PR #{pr_id}: {outcome.kind}")

        report = Report(
            mode=mode,
            work_item_id=work_item_id,
            generated_at=generated_at,
            outcomes=outcomes,
        )

        failed = report.count("failed")
        if failed:
            logger.warning(
                f"Partial failure composing report: {failed}/{len(outcomes)} PRs failed",
                extra={
                    "work_item_id": work_item_id,
                    "succeeded": report.count("success"),
                    "skipped": report.count("skipped"),
                    "failed": failed,
                    "errors": [f"#{o.pr_id}: {o.message}" for o in report.failed_outcomes()][:10],
                },
            )

        log_phase_transition(logger, work_item_id, "compose", "completed")
        return report
