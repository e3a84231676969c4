"""
Review Pipeline.

Runs one review end to end: resolve links, compose the report, write it to
the work item. Resolution errors and update failures propagate to the caller;
everything that goes wrong for a single pull request ends up in the report.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from card_review.config import Settings
from card_review.models.report import Report
from card_review.models.work_item import ResolvedTarget, ReviewMode
from card_review.services.analysis_invoker import AnalysisInvoker
from card_review.services.content_aggregator import ContentAggregator
from card_review.services.devops_client import DevOpsClient
from card_review.services.link_resolver import LinkResolver
from card_review.services.report_composer import ProgressCallback, ReportComposer
from card_review.services.work_item_updater import WorkItemUpdater
from card_review.utils.logging import get_logger
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)


class RunResult(BaseModel):
    """Everything a finished run produced."""

    target: ResolvedTarget
    report: Report
    updated: bool
    revision: Optional[int] = None
    metrics: Dict[str, Any] = {}


class ReviewPipeline:
    """Wires the review components for one organization."""

    def __init__(
        self,
        resolver: LinkResolver,
        composer: ReportComposer,
        updater: WorkItemUpdater,
        metrics: Optional[RunMetrics] = None,
    ):
        self.resolver = resolver
        self.composer = composer
        self.updater = updater
        self.metrics = metrics

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        metrics: Optional[RunMetrics] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> "ReviewPipeline":
        """
        Build every collaborator from explicit settings.

        Args:
            settings: Application settings
            metrics: Run metrics shared by all components
            progress: Callback receiving per PR progress messages

        Returns:
            Ready to run pipeline
        """
        devops = DevOpsClient(
            organization_url=settings.azure_devops_org_url,
            personal_access_token=settings.azure_devops_pat,
            metrics=metrics,
        )
        invoker = AnalysisInvoker(settings, metrics=metrics)
        composer = ReportComposer(
            ContentAggregator(devops, metrics=metrics),
            invoker,
            metrics=metrics,
            progress=progress,
        )
        return cls(
            resolver=LinkResolver(devops),
            composer=composer,
            updater=WorkItemUpdater(devops, settings.report_field),
            metrics=metrics,
        )

    async def run(self, mode: ReviewMode, target_id: int, dry_run: bool = False) -> RunResult:
        """
        Review a pull request or a whole card and persist the verdict.

        Args:
            mode: What target_id identifies
            target_id: Pull request or work item ID
            dry_run: Compose the report without writing it

        Returns:
            RunResult

        Raises:
            ResolutionError: Nothing to analyze (NotLinked, NoLinkedPRs)
            UpdateFailure: The report could not be written
            DevOpsApiError: A platform call failed during resolution
        """
        if self.metrics is not None:
            self.metrics.start()

        try:
            target = await self.resolver.resolve(mode, target_id)
            if self.metrics is not None:
                self.metrics.work_item_id = target.work_item_id

            logger.info(
                f"Reviewing {len(target.pr_ids)} PR(s) against work item {target.work_item_id}",
                extra={"work_item_id": target.work_item_id, "pr_ids": target.pr_ids},
            )

            report = await self.composer.compose(
                target.pr_ids,
                target.requirements_text,
                mode=target.mode,
                work_item_id=target.work_item_id,
            )

            revision = None
            if not dry_run:
                revision = await self.updater.update(target.work_item_id, report)

        except Exception as e:
            self._complete("failed", str(e))
            raise

        self._complete("dry_run" if dry_run else "completed")

        return RunResult(
            target=target,
            report=report,
            updated=not dry_run,
            revision=revision,
            metrics=self.metrics.get_metrics_summary() if self.metrics is not None else {},
        )

    def _complete(self, status: str, error_message: Optional[str] = None) -> None:
        if self.metrics is not None:
            self.metrics.complete(status=status, error_message=error_message)
