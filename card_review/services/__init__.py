"""Review pipeline services package."""

from card_review.services.devops_client import DevOpsClient
from card_review.services.link_resolver import (
    LinkResolver,
    OtherLink,
    PullRequestLink,
    collect_pull_request_ids,
    extract_trailing_id,
    parse_relation,
)
from card_review.services.content_aggregator import ContentAggregator, decode_blob
from card_review.services.analysis_invoker import AnalysisInvoker, build_review_prompt
from card_review.services.report_composer import ReportComposer
from card_review.services.work_item_updater import WorkItemUpdater, build_patch_document
from card_review.services.review_pipeline import ReviewPipeline, RunResult

__all__ = [
    'DevOpsClient',
    'LinkResolver',
    'PullRequestLink',
    'OtherLink',
    'parse_relation',
    'extract_trailing_id',
    'collect_pull_request_ids',
    'ContentAggregator',
    'decode_blob',
    'AnalysisInvoker',
    'build_review_prompt',
    'ReportComposer',
    'WorkItemUpdater',
    'build_patch_document',
    'ReviewPipeline',
    'RunResult',
]
