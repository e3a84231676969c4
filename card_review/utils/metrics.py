"""
Metrics collection for a single review run.

Tracks:
- Run execution time
- Pull request outcomes (analyzed, skipped, failed)
- Files read and skipped
- API call counts and latency per service
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from card_review.utils.logging import get_logger

logger = get_logger(__name__)


class RunMetrics:
    """Collects metrics while one work item is being reviewed."""

    def __init__(self, mode: str, target_id: int):
        """
        Initialize metrics collector.

        Args:
            mode: Review mode value ('pr' or 'card')
            target_id: Identifier the operator asked for
        """
        self.mode = mode
        self.target_id = target_id
        self.work_item_id: Optional[int] = None

        # Timing metrics
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

        # Review metrics
        self.prs_analyzed: int = 0
        self.prs_skipped: int = 0
        self.prs_failed: int = 0
        self.files_read: int = 0
        self.files_skipped: int = 0

        # API metrics
        self.api_calls: Dict[str, int] = {}
        self.api_latencies: Dict[str, list[float]] = {}

        # Status
        self.status: str = "running"
        self.error_message: Optional[str] = None

    def start(self) -> None:
        """Mark run start."""
        self.start_time = datetime.now(timezone.utc)
        self.status = "running"

    def complete(self, status: str = "completed", error_message: Optional[str] = None) -> None:
        """
        Mark run completion and log the summary.

        Args:
            status: Final status ('completed', 'dry_run', 'failed')
            error_message: Error message if failed
        """
        self.end_time = datetime.now(timezone.utc)
        self.status = status
        self.error_message = error_message

        if self.start_time:
            duration = (self.end_time - self.start_time).total_seconds()
            self.duration_ms = int(duration * 1000)

        logger.info(
            f"Run {status} for {self.mode} #{self.target_id}",
            extra={"run_metrics": self.get_metrics_summary()}
        )

    def record_outcome(self, kind: str) -> None:
        """
        Count one pull request outcome.

        Args:
            kind: Outcome kind ('success', 'skipped' or 'failed')
        """
        if kind == "success":
            self.prs_analyzed += 1
        elif kind == "skipped":
            self.prs_skipped += 1
        else:
            self.prs_failed += 1

    def record_files(self, read: int, skipped: int) -> None:
        self.files_read += read
        self.files_skipped += skipped

    def record_api_call(self, service: str, duration_ms: float) -> None:
        """
        Record API call and latency.

        Args:
            service: Service name ('azure_devops' or 'openai')
            duration_ms: Call duration in milliseconds
        """
        self.api_calls[service] = self.api_calls.get(service, 0) + 1
        self.api_latencies.setdefault(service, []).append(duration_ms)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get summary of collected metrics."""
        summary: Dict[str, Any] = {
            "mode": self.mode,
            "target_id": self.target_id,
            "work_item_id": self.work_item_id,
            "status": self.status,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "prs_analyzed": self.prs_analyzed,
            "prs_skipped": self.prs_skipped,
            "prs_failed": self.prs_failed,
            "files_read": self.files_read,
            "files_skipped": self.files_skipped,
            "api_calls": dict(self.api_calls),
        }

        if self.api_latencies:
            latency_stats = {}
            for service, latencies in self.api_latencies.items():
                if latencies:
                    latency_stats[service] = {
                        "count": len(latencies),
                        "min_ms": round(min(latencies), 2),
                        "max_ms": round(max(latencies), 2),
                        "avg_ms": round(sum(latencies) / len(latencies), 2),
                    }
            summary["api_latencies"] = latency_stats

        if self.error_message:
            summary["error_message"] = self.error_message

        return summary
