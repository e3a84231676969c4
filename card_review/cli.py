"""CLI entry point for card-review.

Reviews a single pull request or every pull request linked to a card, then
writes the verdict onto the card. Exit codes:

  0  report written (or composed, with --dry-run)
  1  configuration error
  2  resolution failed: nothing to analyze
  3  the report was composed but could not be written to the work item
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from card_review import __version__
from card_review.config import load_settings
from card_review.errors import CardReviewError, ConfigurationError, UpdateFailure
from card_review.models.report import Report
from card_review.models.work_item import ReviewMode
from card_review.services.review_pipeline import ReviewPipeline
from card_review.utils.logging import get_logger, setup_logging
from card_review.utils.metrics import RunMetrics


logger = get_logger(__name__)

EXIT_CONFIG = 1
EXIT_RESOLUTION = 2
EXIT_UPDATE = 3

_MODE_ALIASES = {
    "1": ReviewMode.PR,
    "pr": ReviewMode.PR,
    "2": ReviewMode.CARD,
    "card": ReviewMode.CARD,
}


def parse_mode(value: str) -> ReviewMode:
    """Map operator input ('1', '2', 'pr', 'card') to a ReviewMode."""
    try:
        return _MODE_ALIASES[value.strip().lower()]
    except KeyError:
        raise click.BadParameter(f"unknown mode {value!r}, expected 1/pr or 2/card") from None


def _prompt_mode() -> str:
    click.echo("Choose the operating mode:")
    click.echo("1 - Analyze a specific Pull Request")
    click.echo("2 - Analyze a Card (and every linked PR)")
    return click.prompt("-> Enter 1 or 2", type=click.Choice(list(_MODE_ALIASES)), show_choices=False)


def _save_report(report: Report, output: Optional[Path]) -> None:
    html = report.render_html()
    if output is None:
        click.echo(html)
        return
    output.write_text(html, encoding="utf-8")
    click.echo(f"Report saved to {output}")


@click.command()
@click.version_option(version=__version__, prog_name="card-review")
@click.argument("mode", required=False)
@click.argument("target_id", required=False, type=click.IntRange(min=1))
@click.option("--dry-run", is_flag=True, help="Compose the report without writing it to the card.")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Also save the rendered report to this file.",
)
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def main(
    mode: Optional[str],
    target_id: Optional[int],
    dry_run: bool,
    output: Optional[Path],
    log_level: Optional[str],
):
    """Review pull requests against the requirements of their Azure Boards card.

    MODE is 'pr' (or 1) to review one pull request, 'card' (or 2) to review every
    pull request linked to a card. TARGET_ID is the pull request or card id.
    Missing arguments are asked for interactively.
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging((log_level or "INFO").upper())
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_CONFIG)

    setup_logging((log_level or settings.log_level).upper())

    review_mode = parse_mode(mode if mode is not None else _prompt_mode())
    if target_id is None:
        target_id = click.prompt("-> Enter the ID", type=click.IntRange(min=1))

    metrics = RunMetrics(review_mode.value, target_id)
    click.echo(f"Starting {review_mode.label.lower()} review of #{target_id}...")

    try:
        pipeline = ReviewPipeline.from_settings(settings, metrics=metrics, progress=click.echo)
        result = asyncio.run(pipeline.run(review_mode, target_id, dry_run=dry_run))
    except UpdateFailure as e:
        click.echo(f"Update failed: {e}", err=True)
        click.echo("The analysis succeeded; only the write to the card needs to be retried.", err=True)
        if e.report is not None:
            _save_report(e.report, output)
        sys.exit(EXIT_UPDATE)
    except CardReviewError as e:
        click.echo(f"Resolution failed: {e}", err=True)
        sys.exit(EXIT_RESOLUTION)

    report = result.report
    click.echo(
        f"{report.count('success')} analyzed, {report.count('skipped')} skipped, "
        f"{report.count('failed')} failed."
    )

    if dry_run:
        _save_report(report, output)
        return

    if output is not None:
        _save_report(report, output)
    click.echo(f"Success! Card {result.target.work_item_id} updated.")


if __name__ == "__main__":
    main()
