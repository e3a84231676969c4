"""
Work Item Updater component.

Writes the rendered report into one configured work item field. Each run
replaces the field's content entirely.
"""

from typing import Optional

from card_review.errors import UpdateFailure
from card_review.models.report import Report
from card_review.services.devops_client import DevOpsClient
from card_review.utils.logging import get_logger, log_phase_transition


logger = get_logger(__name__)


def build_patch_document(field: str, value: str) -> list:
    """Single JSON patch operation setting ``field`` to ``value``."""
    return [
        {
            "op": "add",
            "path": f"/fields/{field}",
            "value": value,
        }
    ]


class WorkItemUpdater:
    """Persists the report on the work item."""

    def __init__(self, devops: DevOpsClient, field: str):
        """
        Args:
            devops: Azure DevOps client
            field: Reference name of the field receiving the report
        """
        self.devops = devops
        self.field = field

    async def update(self, work_item_id: int, report: Report) -> Optional[int]:
        """
        Overwrite the configured field with the rendered report.

        Args:
            work_item_id: Work item to patch
            report: Composed report

        Returns:
            Work item revision after the update, when reported

        Raises:
            UpdateFailure: If the platform rejects the patch
        """
        log_phase_transition(logger, work_item_id, "update", "started")

        patch = build_patch_document(self.field, report.render_html())
        try:
            revision = await self.devops.update_work_item(work_item_id, patch)
        except Exception as e:
            log_phase_transition(logger, work_item_id, "update", "failed")
            raise UpdateFailure(work_item_id, self.field, str(e), report=report) from e

        logger.info(
            f"Work item {work_item_id} updated",
            extra={"work_item_id": work_item_id, "field": self.field, "revision": revision},
        )
        log_phase_transition(logger, work_item_id, "update", "completed")
        return revision
