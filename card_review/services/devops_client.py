"""
Azure DevOps client facade.

This module wraps the Azure DevOps Python SDK git and work item tracking
clients behind the handful of operations the review pipeline needs. Each SDK
call is synchronous, so it runs in the default executor and the caller awaits
it; one attempt is made per call.
"""

import asyncio
import time
from typing import Any, List, Optional

from azure.devops.connection import Connection
from azure.devops.v7_1.work_item_tracking.models import JsonPatchOperation
from msrest.authentication import BasicAuthentication

from card_review.errors import DevOpsApiError
from card_review.models.pull_request import ChangeKind, IterationChange, PullRequestInfo
from card_review.models.work_item import (
    ACCEPTANCE_CRITERIA_FIELD,
    DESCRIPTION_FIELD,
    TITLE_FIELD,
    RelationLink,
    WorkItem,
)
from card_review.utils.logging import get_logger, log_api_call
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)

SERVICE_NAME = "azure_devops"


def _item_attr(item: Any, snake_name: str, camel_name: str, default: Any = None) -> Any:
    """Read a field from a change item the SDK left as a dict or built as a model."""
    if item is None:
        return default
    if isinstance(item, dict):
        if camel_name in item:
            return item[camel_name]
        return item.get(snake_name, default)
    return getattr(item, snake_name, default)


class DevOpsClient:
    """
    Reads pull requests and work items from Azure DevOps and patches work items.

    All methods raise DevOpsApiError when the SDK call fails.
    """

    def __init__(
        self,
        organization_url: str,
        personal_access_token: str,
        connection: Optional[Connection] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        """
        Initialize the client with an Azure DevOps connection.

        Args:
            organization_url: Azure DevOps organization URL
            personal_access_token: PAT for authentication
            connection: Pre-built connection, mainly for tests
            metrics: Run metrics that record call counts and latency

        Raises:
            DevOpsApiError: If the organization cannot be reached or the
                PAT is rejected while the SDK clients are created
        """
        self.organization_url = organization_url
        self.metrics = metrics

        # get_*_client looks up the organization's resource areas over the network
        try:
            if connection is None:
                credentials = BasicAuthentication('', personal_access_token)
                connection = Connection(base_url=organization_url, creds=credentials)
            self.connection = connection
            self.git_client = self.connection.clients_v7_1.get_git_client()
            self.wit_client = self.connection.clients_v7_1.get_work_item_tracking_client()
        except Exception as e:
            log_api_call(
                logger,
                service=SERVICE_NAME,
                endpoint="connect",
                method="GET",
                error=str(e),
            )
            raise DevOpsApiError("connect", str(e)) from e

        logger.info(f"DevOpsClient initialized for organization: {self.organization_url}")

    async def _call(self, operation: str, func, *args, method: str = "GET", **kwargs):
        """
        Run one SDK call in the executor, logging and timing it.

        Raises:
            DevOpsApiError: If the SDK call raises
        """
        loop = asyncio.get_running_loop()
        start_time = time.time()

        try:
            result = await loop.run_in_executor(None, lambda: func(*args, **kwargs))
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._record(duration_ms)
            log_api_call(
                logger,
                service=SERVICE_NAME,
                endpoint=operation,
                method=method,
                duration_ms=duration_ms,
                error=str(e),
            )
            raise DevOpsApiError(operation, str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        self._record(duration_ms)
        log_api_call(
            logger,
            service=SERVICE_NAME,
            endpoint=operation,
            method=method,
            status_code=200,
            duration_ms=duration_ms,
        )
        return result

    def _record(self, duration_ms: float) -> None:
        if self.metrics is not None:
            self.metrics.record_api_call(SERVICE_NAME, duration_ms)

    async def get_pull_request(self, pr_id: int) -> Optional[PullRequestInfo]:
        """
        Retrieve pull request metadata.

        Args:
            pr_id: Pull request ID

        Returns:
            PullRequestInfo, or None if the platform returned no record
        """
        pr = await self._call(
            "get_pull_request_by_id",
            self.git_client.get_pull_request_by_id,
            pull_request_id=pr_id,
        )
        if pr is None:
            return None

        return PullRequestInfo(
            pr_id=pr.pull_request_id or pr_id,
            title=pr.title or "",
            repository_id=pr.repository.id,
            project_name=pr.repository.project.name,
        )

    async def get_iterations(self, repository_id: str, pr_id: int, project: str) -> List[int]:
        """Return the PR's iteration ids in platform order."""
        iterations = await self._call(
            "get_pull_request_iterations",
            self.git_client.get_pull_request_iterations,
            repository_id=repository_id,
            pull_request_id=pr_id,
            project=project,
        )
        return [iteration.id for iteration in iterations or [] if iteration.id is not None]

    async def get_iteration_changes(
        self,
        repository_id: str,
        pr_id: int,
        iteration_id: int,
        project: str,
    ) -> List[IterationChange]:
        """
        Return every change entry of one iteration, following paging.

        Args:
            repository_id: Repository ID
            pr_id: Pull request ID
            iteration_id: Iteration to read
            project: Project name

        Returns:
            Change entries in platform order
        """
        entries: List[IterationChange] = []
        skip: Optional[int] = None
        top: Optional[int] = None

        while True:
            page = await self._call(
                "get_pull_request_iteration_changes",
                self.git_client.get_pull_request_iteration_changes,
                repository_id=repository_id,
                pull_request_id=pr_id,
                iteration_id=iteration_id,
                project=project,
                top=top,
                skip=skip,
            )
            if page is None:
                break

            for change in page.change_entries or []:
                entries.append(self._to_iteration_change(change))

            next_skip = getattr(page, "next_skip", None)
            if not isinstance(next_skip, int) or next_skip <= 0:
                break
            next_top = getattr(page, "next_top", None)
            skip = next_skip
            top = next_top if isinstance(next_top, int) and next_top > 0 else None

        return entries

    @staticmethod
    def _to_iteration_change(change: Any) -> IterationChange:
        item = getattr(change, "item", None)
        return IterationChange(
            path=_item_attr(item, "path", "path"),
            object_id=_item_attr(item, "object_id", "objectId"),
            change_kind=ChangeKind.from_platform(getattr(change, "change_type", None)),
            is_folder=bool(_item_attr(item, "is_folder", "isFolder", False)),
            has_item=bool(item),
        )

    async def get_blob(self, repository_id: str, object_id: str, project: str) -> bytes:
        """Download the raw bytes of one blob."""
        stream = await self._call(
            "get_blob_content",
            self.git_client.get_blob_content,
            repository_id=repository_id,
            sha1=object_id,
            project=project,
            download=True,
        )
        if stream is None:
            return b""
        if isinstance(stream, bytes):
            return stream
        return b"".join(
            chunk if isinstance(chunk, bytes) else bytes(chunk) for chunk in stream
        )

    async def get_work_item_refs(self, repository_id: str, pr_id: int, project: str) -> List[str]:
        """Return the URLs of the work items a pull request references."""
        refs = await self._call(
            "get_pull_request_work_item_refs",
            self.git_client.get_pull_request_work_item_refs,
            repository_id=repository_id,
            pull_request_id=pr_id,
            project=project,
        )
        urls = []
        for ref in refs or []:
            url = getattr(ref, "url", None)
            if url:
                urls.append(url)
            elif getattr(ref, "id", None):
                urls.append(str(ref.id))
        return urls

    async def get_work_item(self, work_item_id: int, expand_relations: bool = False) -> WorkItem:
        """
        Retrieve a work item and its requirement fields.

        Args:
            work_item_id: Work item ID
            expand_relations: Also load the relation links

        Returns:
            WorkItem model
        """
        raw = await self._call(
            "get_work_item",
            self.wit_client.get_work_item,
            id=work_item_id,
            expand="Relations" if expand_relations else None,
        )
        if raw is None:
            raise DevOpsApiError("get_work_item", f"work item #{work_item_id} not found")

        fields = raw.fields or {}
        relations = [
            RelationLink(rel=getattr(relation, "rel", None), url=relation.url)
            for relation in raw.relations or []
            if getattr(relation, "url", None)
        ]

        return WorkItem(
            id=raw.id or work_item_id,
            title=fields.get(TITLE_FIELD) or "",
            description=fields.get(DESCRIPTION_FIELD) or "",
            acceptance_criteria=fields.get(ACCEPTANCE_CRITERIA_FIELD) or "",
            relations=relations,
        )

    async def update_work_item(self, work_item_id: int, patch_ops: List[dict]) -> Optional[int]:
        """
        Apply a JSON patch document to a work item.

        Args:
            work_item_id: Work item ID
            patch_ops: Operations as dicts with op, path and value

        Returns:
            The work item revision after the update, when the platform reports it
        """
        document = [
            JsonPatchOperation(op=op["op"], path=op["path"], value=op.get("value"))
            for op in patch_ops
        ]
        updated = await self._call(
            "update_work_item",
            self.wit_client.update_work_item,
            document=document,
            id=work_item_id,
            method="PATCH",
        )
        return getattr(updated, "rev", None)
