"""
Unit tests for the PR Content Aggregator component.
"""

import pytest
from unittest.mock import AsyncMock

from card_review.errors import AggregationError, DevOpsApiError, PRNotFound
from card_review.models import (
    ChangeKind,
    CodeContext,
    FileSkipReason,
    IterationChange,
    PullRequestInfo,
    ReviewSkipped,
    SkipReason,
)
from card_review.services.content_aggregator import ContentAggregator, decode_blob
from card_review.utils.metrics import RunMetrics


@pytest.fixture
def mock_devops():
    """Create a mock DevOpsClient with PR 42 in two iterations."""
    devops = AsyncMock()
    devops.get_pull_request.return_value = PullRequestInfo(
        pr_id=42, title="Add invoice export", repository_id="repo-1", project_name="Billing"
    )
    devops.get_iterations.return_value = [1, 2]
    return devops


@pytest.fixture
def metrics():
    return RunMetrics("pr", 42)


@pytest.fixture
def aggregator(mock_devops, metrics):
    """Create ContentAggregator instance."""
    return ContentAggregator(mock_devops, metrics=metrics)


def _change(path, object_id, kind=ChangeKind.EDIT, is_folder=False):
    return IterationChange(path=path, object_id=object_id, change_kind=kind, is_folder=is_folder)


class TestDecodeBlob:
    """Test blob decoding."""

    def test_text(self):
        assert decode_blob(b"hello") == "hello"

    def test_nul_byte_marks_binary(self):
        assert decode_blob(b"\x89PNG\x00\x00") is None

    def test_invalid_utf8_is_replaced(self):
        assert decode_blob(b"caf\xe9") == "caf\ufffd"


class TestContentAggregator:
    """Test suite for ContentAggregator."""

    @pytest.mark.asyncio
    async def test_binary_file_is_skipped(self, aggregator, mock_devops, metrics):
        """Test a text file is kept and a NUL-bearing file is left out."""
        mock_devops.get_iteration_changes.return_value = [
            _change("/a.txt", "sha-a"),
            _change("/b.bin", "sha-b"),
        ]
        mock_devops.get_blob.side_effect = [b"hello", b"\x00\x01\x02"]

        context = await aggregator.aggregate(42)

        assert isinstance(context, CodeContext)
        assert context.iteration_id == 2
        assert [f.path for f in context.files] == ["/a.txt"]
        assert context.files[0].content == "hello"
        assert context.skipped_files[0].path == "/b.bin"
        assert context.skipped_files[0].reason is FileSkipReason.BINARY
        assert context.text == "\n--- FILE: /a.txt ---\nhello\n"
        assert "b.bin" not in context.text
        assert metrics.files_read == 1
        assert metrics.files_skipped == 1

    @pytest.mark.asyncio
    async def test_reads_latest_iteration(self, aggregator, mock_devops):
        """Test the highest iteration id is read regardless of order."""
        mock_devops.get_iterations.return_value = [3, 1, 2]
        mock_devops.get_iteration_changes.return_value = [_change("/a.py", "sha-a")]
        mock_devops.get_blob.return_value = b"print('x')"

        context = await aggregator.aggregate(42)

        assert context.iteration_id == 3
        mock_devops.get_iteration_changes.assert_awaited_once_with("repo-1", 42, 3, "Billing")

    @pytest.mark.asyncio
    async def test_preserves_change_order(self, aggregator, mock_devops):
        """Test files appear in the order the platform listed them."""
        mock_devops.get_iteration_changes.return_value = [
            _change("/z.py", "sha-z"),
            _change("/a.py", "sha-a"),
        ]
        mock_devops.get_blob.side_effect = [b"z", b"a"]

        context = await aggregator.aggregate(42)

        assert context.text.index("/z.py") < context.text.index("/a.py")

    @pytest.mark.asyncio
    async def test_blob_error_does_not_fail_pull_request(self, aggregator, mock_devops, metrics):
        """Test one unreadable file is skipped and the others kept."""
        mock_devops.get_iteration_changes.return_value = [
            _change("/a.py", "sha-a"),
            _change("/broken.py", "sha-x"),
            _change("/c.py", "sha-c"),
        ]
        mock_devops.get_blob.side_effect = [
            b"a = 1",
            DevOpsApiError("get_blob_content", "timeout"),
            b"c = 3",
        ]

        context = await aggregator.aggregate(42)

        assert [f.path for f in context.files] == ["/a.py", "/c.py"]
        assert context.skipped_files[0].reason is FileSkipReason.READ_ERROR
        assert "timeout" in context.skipped_files[0].detail
        assert metrics.files_skipped == 1

    @pytest.mark.asyncio
    async def test_deleted_folders_and_itemless_entries_are_not_read(self, aggregator, mock_devops):
        """Test only reviewable entries with an object id are downloaded."""
        mock_devops.get_iteration_changes.return_value = [
            _change("/gone.py", "sha-gone", kind=ChangeKind.DELETE),
            _change("/src", "sha-tree", is_folder=True),
            IterationChange(has_item=False),
            _change("/no-object.py", None),
            _change("/kept.py", "sha-kept"),
        ]
        mock_devops.get_blob.return_value = b"kept"

        context = await aggregator.aggregate(42)

        assert [f.path for f in context.files] == ["/kept.py"]
        mock_devops.get_blob.assert_awaited_once_with("repo-1", "sha-kept", "Billing")

    @pytest.mark.asyncio
    async def test_no_iterations(self, aggregator, mock_devops):
        """Test a PR without iterations is skipped."""
        mock_devops.get_iterations.return_value = []

        outcome = await aggregator.aggregate(42)

        assert isinstance(outcome, ReviewSkipped)
        assert outcome.reason is SkipReason.NO_ITERATIONS
        assert outcome.title == "Add invoice export"
        mock_devops.get_iteration_changes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_readable_code(self, aggregator, mock_devops):
        """Test a PR whose files are all binary is skipped."""
        mock_devops.get_iteration_changes.return_value = [_change("/logo.png", "sha-png")]
        mock_devops.get_blob.return_value = b"\x89PNG\x00"

        outcome = await aggregator.aggregate(42)

        assert isinstance(outcome, ReviewSkipped)
        assert outcome.reason is SkipReason.NO_READABLE_CODE

    @pytest.mark.asyncio
    async def test_empty_change_list(self, aggregator, mock_devops):
        """Test an iteration with no changes is skipped as unreadable."""
        mock_devops.get_iteration_changes.return_value = []

        outcome = await aggregator.aggregate(42)

        assert outcome.reason is SkipReason.NO_READABLE_CODE

    @pytest.mark.asyncio
    async def test_pull_request_not_found(self, aggregator, mock_devops):
        """Test PRNotFound when the platform returns no record."""
        mock_devops.get_pull_request.return_value = None

        with pytest.raises(PRNotFound):
            await aggregator.aggregate(42)

    @pytest.mark.asyncio
    async def test_iteration_listing_error_carries_title(self, aggregator, mock_devops):
        """Test a failed iteration listing is raised with the fetched PR title."""
        mock_devops.get_iterations.side_effect = DevOpsApiError("get_pull_request_iterations", "403")

        with pytest.raises(AggregationError) as exc_info:
            await aggregator.aggregate(42)

        assert exc_info.value.pr_id == 42
        assert exc_info.value.title == "Add invoice export"
        assert isinstance(exc_info.value.cause, DevOpsApiError)

    @pytest.mark.asyncio
    async def test_change_listing_error_carries_title(self, aggregator, mock_devops):
        """Test a failed change listing is raised with the fetched PR title."""
        mock_devops.get_iteration_changes.side_effect = DevOpsApiError(
            "get_pull_request_iteration_changes", "500"
        )

        with pytest.raises(AggregationError) as exc_info:
            await aggregator.aggregate(42)

        assert exc_info.value.title == "Add invoice export"
        mock_devops.get_blob.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_metadata_error_propagates(self, aggregator, mock_devops):
        """Test a failed metadata read is raised unchanged."""
        mock_devops.get_pull_request.side_effect = DevOpsApiError("get_pull_request_by_id", "403")

        with pytest.raises(DevOpsApiError):
            await aggregator.aggregate(42)
