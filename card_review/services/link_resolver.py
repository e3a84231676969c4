"""
Link Resolver component.

Resolves which work item a run writes to and which pull requests it reviews,
walking the Azure DevOps relation graph from either end.

Pull request relations on a work item are artifact links such as
``vstfs:///Git/PullRequestId/<project>%2F<repo>%2F<id>``; they are classified
by parse_relation() into PullRequestLink or OtherLink.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote

from card_review.errors import NoLinkedPRs, NotLinked, PRNotFound
from card_review.models.work_item import RelationLink, ResolvedTarget, ReviewMode
from card_review.services.devops_client import DevOpsClient
from card_review.utils.logging import get_logger, log_phase_transition


logger = get_logger(__name__)

PULL_REQUEST_MARKER = "pullrequestid"

_TRAILING_ID_PATTERN = re.compile(r"/(\d+)$")


@dataclass(frozen=True)
class PullRequestLink:
    """Relation pointing at a pull request."""

    pr_id: int


@dataclass(frozen=True)
class OtherLink:
    """Any relation that is not a usable pull request link."""

    url: str


ParsedRelation = Union[PullRequestLink, OtherLink]


def _parse_positive_int(value: str) -> Optional[int]:
    try:
        number = int(value.strip())
    except ValueError:
        return None
    return number if number > 0 else None


def extract_trailing_id(url: str) -> Optional[int]:
    """
    Extract the trailing integer of a (possibly percent-encoded) URL.

    Tries a numeric path suffix first, then the last ``/`` segment.

    Args:
        url: Relation or reference URL

    Returns:
        The id, or None if neither rule yields a positive integer
    """
    decoded = unquote(url)

    match = _TRAILING_ID_PATTERN.search(decoded)
    if match:
        return _parse_positive_int(match.group(1))

    return _parse_positive_int(decoded.split("/")[-1])


def parse_relation(url: str) -> ParsedRelation:
    """
    Classify one relation URL.

    Args:
        url: Relation URL as stored on the work item

    Returns:
        PullRequestLink when the URL carries the pull request marker
        (any case) and a trailing id; OtherLink otherwise
    """
    if not url or PULL_REQUEST_MARKER not in url.lower():
        return OtherLink(url=url or "")

    pr_id = extract_trailing_id(url)
    if pr_id is None:
        logger.debug(f"Pull request relation without a usable id skipped: {url}")
        return OtherLink(url=url)

    return PullRequestLink(pr_id=pr_id)


def collect_pull_request_ids(relations: Iterable[RelationLink]) -> List[int]:
    """
    Collect distinct pull request ids from relations, in first-seen order.

    Args:
        relations: Work item relations

    Returns:
        Duplicate-free list of pull request ids
    """
    seen = set()
    pr_ids: List[int] = []

    for relation in relations:
        parsed = parse_relation(relation.url)
        if isinstance(parsed, PullRequestLink) and parsed.pr_id not in seen:
            seen.add(parsed.pr_id)
            pr_ids.append(parsed.pr_id)
            logger.info(f"Identified PR #{parsed.pr_id}", extra={"pr_id": parsed.pr_id})

    return pr_ids


class LinkResolver:
    """Resolves the (work item, pull requests, requirements) triple for a run."""

    def __init__(self, devops: DevOpsClient):
        self.devops = devops

    async def resolve(self, mode: ReviewMode, target_id: int) -> ResolvedTarget:
        """
        Resolve the work item and pull request set for a run.

        Args:
            mode: ReviewMode.PR when target_id is a pull request,
                ReviewMode.CARD when it is a work item
            target_id: Operator supplied identifier

        Returns:
            ResolvedTarget with the work item id, PR ids and requirements text

        Raises:
            NotLinked: PR-first mode and the PR references no work item
            NoLinkedPRs: Work item mode and no pull request relation was found
            PRNotFound: PR-first mode and the PR does not exist
            DevOpsApiError: If a platform call fails
        """
        log_phase_transition(logger, None, "resolve", "started")

        if mode is ReviewMode.PR:
            target = await self._resolve_from_pull_request(target_id)
        else:
            target = await self._resolve_from_work_item(target_id)

        log_phase_transition(logger, target.work_item_id, "resolve", "completed")
        return target

    async def _resolve_from_pull_request(self, pr_id: int) -> ResolvedTarget:
        logger.info(f"Looking up the work item linked to PR {pr_id}", extra={"pr_id": pr_id})

        pr = await self.devops.get_pull_request(pr_id)
        if pr is None:
            raise PRNotFound(pr_id)

        ref_urls = await self.devops.get_work_item_refs(pr.repository_id, pr_id, pr.project_name)
        if not ref_urls:
            raise NotLinked(pr_id)

        if len(ref_urls) > 1:
            logger.warning(
                f"PR {pr_id} references {len(ref_urls)} work items, using the first one",
                extra={"pr_id": pr_id, "work_item_refs": ref_urls},
            )

        work_item_id = extract_trailing_id(ref_urls[0])
        if work_item_id is None:
            raise NotLinked(pr_id)

        work_item = await self.devops.get_work_item(work_item_id)

        return ResolvedTarget(
            mode=ReviewMode.PR,
            work_item_id=work_item.id,
            work_item_title=work_item.title,
            pr_ids=[pr_id],
            requirements_text=work_item.requirements_text(),
        )

    async def _resolve_from_work_item(self, work_item_id: int) -> ResolvedTarget:
        logger.info(
            f"Looking up PRs linked to work item {work_item_id}",
            extra={"work_item_id": work_item_id},
        )

        work_item = await self.devops.get_work_item(work_item_id, expand_relations=True)
        logger.info(
            f"Scanning {len(work_item.relations)} relations",
            extra={"work_item_id": work_item_id},
        )

        pr_ids = collect_pull_request_ids(work_item.relations)
        if not pr_ids:
            raise NoLinkedPRs(work_item_id)

        return ResolvedTarget(
            mode=ReviewMode.CARD,
            work_item_id=work_item.id,
            work_item_title=work_item.title,
            pr_ids=pr_ids,
            requirements_text=work_item.requirements_text(),
        )
