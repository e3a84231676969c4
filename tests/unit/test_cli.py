"""
Unit tests for the command line entry point.
"""

from datetime import datetime, timezone

import click
import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock, Mock, patch

from card_review.cli import main, parse_mode
from card_review.errors import ConfigurationError, DevOpsApiError, NotLinked, UpdateFailure
from card_review.models import Report, ResolvedTarget, ReviewFailed, ReviewMode, ReviewSuccess
from card_review.services.review_pipeline import RunResult


def _report(mode=ReviewMode.CARD):
    return Report(
        mode=mode,
        work_item_id=500,
        generated_at=datetime(2026, 3, 14, tzinfo=timezone.utc),
        outcomes=[
            ReviewSuccess(pr_id=42, title="Add export", analysis="APPROVED"),
            ReviewFailed(pr_id=43, title="Fix", phase="analyze", error_type="E", message="boom"),
        ],
    )


def _result(dry_run=False):
    report = _report()
    return RunResult(
        target=ResolvedTarget(
            mode=ReviewMode.CARD,
            work_item_id=500,
            pr_ids=[42, 43],
            requirements_text="TITLE: t\nDESCRIPTION: d\nACCEPTANCE CRITERIA: a",
        ),
        report=report,
        updated=not dry_run,
        revision=None if dry_run else 9,
    )


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_pipeline():
    """Patch settings, logging and pipeline construction."""
    pipeline = Mock()
    pipeline.run = AsyncMock(return_value=_result())
    with patch('card_review.cli.load_settings') as mock_load, \
         patch('card_review.cli.setup_logging'), \
         patch('card_review.cli.ReviewPipeline.from_settings', return_value=pipeline) as mock_build:
        mock_load.return_value = Mock(log_level="INFO")
        pipeline.from_settings = mock_build
        yield pipeline


@pytest.mark.parametrize("value,expected", [
    ("1", ReviewMode.PR),
    ("pr", ReviewMode.PR),
    (" PR ", ReviewMode.PR),
    ("2", ReviewMode.CARD),
    ("card", ReviewMode.CARD),
])
def test_parse_mode(value, expected):
    assert parse_mode(value) is expected


def test_parse_mode_rejects_unknown():
    with pytest.raises(click.BadParameter):
        parse_mode("3")


def test_card_review_success(runner, mock_pipeline):
    """Test a full card review exits 0 and reports the update."""
    result = runner.invoke(main, ["card", "500"])

    assert result.exit_code == 0
    assert "1 analyzed, 0 skipped, 1 failed." in result.output
    assert "Success! Card 500 updated." in result.output
    mock_pipeline.run.assert_awaited_once_with(ReviewMode.CARD, 500, dry_run=False)


def test_progress_is_echoed(runner, mock_pipeline):
    """Test the pipeline is built with click.echo for progress."""
    runner.invoke(main, ["pr", "42"])

    assert mock_pipeline.from_settings.call_args.kwargs["progress"] is click.echo


def test_interactive_prompts(runner, mock_pipeline):
    """Test mode and id are asked for when omitted."""
    result = runner.invoke(main, [], input="1\n42\n")

    assert result.exit_code == 0
    assert "Choose the operating mode:" in result.output
    mock_pipeline.run.assert_awaited_once_with(ReviewMode.PR, 42, dry_run=False)


def test_unknown_mode_is_a_usage_error(runner, mock_pipeline):
    result = runner.invoke(main, ["sprint", "5"])

    assert result.exit_code != 0
    mock_pipeline.run.assert_not_awaited()


def test_dry_run_prints_report(runner, mock_pipeline):
    """Test dry runs print the rendered report instead of updating."""
    mock_pipeline.run.return_value = _result(dry_run=True)

    result = runner.invoke(main, ["card", "500", "--dry-run"])

    assert result.exit_code == 0
    assert "<h2>AI Review Report (Full card)</h2>" in result.output
    assert "updated" not in result.output
    mock_pipeline.run.assert_awaited_once_with(ReviewMode.CARD, 500, dry_run=True)


def test_output_file(runner, mock_pipeline, tmp_path):
    """Test --output saves the rendered report."""
    output = tmp_path / "report.html"

    result = runner.invoke(main, ["card", "500", "--output", str(output)])

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8").startswith("<h2>AI Review Report")


def test_configuration_error_exit_code(runner):
    """Test missing settings exit with code 1."""
    with patch('card_review.cli.load_settings', side_effect=ConfigurationError("REPORT_FIELD missing")), \
         patch('card_review.cli.setup_logging'):
        result = runner.invoke(main, ["card", "500"])

    assert result.exit_code == 1
    assert "REPORT_FIELD missing" in result.output


@pytest.mark.parametrize("error", [
    NotLinked(7),
    DevOpsApiError("get_work_item", "401 Unauthorized"),
])
def test_resolution_error_exit_code(runner, mock_pipeline, error):
    """Test resolution failures exit with code 2."""
    mock_pipeline.run.side_effect = error

    result = runner.invoke(main, ["pr", "7"])

    assert result.exit_code == 2
    assert "Resolution failed" in result.output


def test_update_failure_exit_code(runner, mock_pipeline, tmp_path):
    """Test a failed write exits with code 3 and keeps the report."""
    output = tmp_path / "report.html"
    mock_pipeline.run.side_effect = UpdateFailure(500, "Custom.AI", "403", report=_report())

    result = runner.invoke(main, ["card", "500", "--output", str(output)])

    assert result.exit_code == 3
    assert "Update failed" in result.output
    assert 'data-pr-id="42"' in output.read_text(encoding="utf-8")


def test_connection_error_exit_code(runner):
    """Test an unreachable organization while building the pipeline exits with code 2."""
    with patch('card_review.cli.load_settings', return_value=Mock(log_level="INFO")), \
         patch('card_review.cli.setup_logging'), \
         patch('card_review.cli.ReviewPipeline.from_settings',
               side_effect=DevOpsApiError("connect", "TF400813: not authorized")):
        result = runner.invoke(main, ["card", "500"])

    assert result.exit_code == 2
    assert "Resolution failed" in result.output
    assert "TF400813" in result.output


def test_connection_error_from_sdk_client_exit_code(runner):
    """Test SDK client creation failing inside DevOpsClient is reported as a resolution failure."""
    settings = Mock(
        log_level="INFO",
        azure_devops_org_url="https://dev.azure.com/test-org",
        azure_devops_pat="bad-pat",
        report_field="Custom.AI",
    )
    with patch('card_review.cli.load_settings', return_value=settings), \
         patch('card_review.cli.setup_logging'), \
         patch('card_review.services.review_pipeline.AnalysisInvoker'), \
         patch('card_review.services.devops_client.Connection') as mock_conn:
        mock_conn.return_value.clients_v7_1.get_git_client.side_effect = RuntimeError(
            "TF400813: not authorized"
        )
        result = runner.invoke(main, ["pr", "42"])

    assert result.exit_code == 2
    assert "connect failed: TF400813" in result.output
