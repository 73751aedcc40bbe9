"""Pull request digest: fetch stage plus pure filter, group and render stages."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from .directory import Directory
from .errors import FetchError
from .models import DigestRequest, Issue, TeamRef
from .utils import format_age, is_stale

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"

AuthorGroup = Tuple[str, List[Issue]]


class IssueClient(Protocol):
    async def fetch_org_issues(self, org: str) -> List[Issue]: ...

    async def fetch_team_members(self, team: TeamRef) -> List[str]: ...


@dataclass(frozen=True)
class DigestResult:
    text: str
    is_error: bool = False


def only_pull_requests(issues: Iterable[Issue]) -> List[Issue]:
    return [issue for issue in issues if issue.is_pull_request]


def filter_by_authors(
    issues: Iterable[Issue], authors: Optional[Set[str]]
) -> List[Issue]:
    """Keep issues by the given authors; None means keep everything."""
    if authors is None:
        return list(issues)
    wanted = {author.lower() for author in authors}
    return [issue for issue in issues if issue.author.lower() in wanted]


def group_by_author(issues: Iterable[Issue]) -> List[AuthorGroup]:
    """Sort oldest update first, then group by author.

    Groups come out in the order their first issue appears after sorting.
    """
    ordered = sorted(issues, key=lambda issue: _as_utc(issue.updated_at))
    groups: Dict[str, List[Issue]] = {}
    for issue in ordered:
        groups.setdefault(issue.author, []).append(issue)
    return list(groups.items())


def render_issue(issue: Issue, now: datetime) -> str:
    age = format_age(now - _as_utc(issue.updated_at))
    if is_stale(issue.updated_at, now):
        age = f"_{age}_"
    comments = "1 comment" if issue.comments == 1 else f"{issue.comments} comments"
    assignee = issue.assignee or UNASSIGNED
    return f"• {age} · {comments} · {assignee} · {issue.title} <{issue.url}>"


def render_digest(groups: List[AuthorGroup], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    lines: List[str] = []
    for login, issues in groups:
        lines.append(f"*{login}*")
        lines.extend(render_issue(issue, now) for issue in issues)
    return "\n".join(lines)


def nothing_found(request: DigestRequest) -> str:
    return "Nothing found for " + request.describe(True)


def fetch_failed(request: DigestRequest, error: Exception) -> str:
    label = f"request #{request.id}" if request.id is not None else "your request"
    return f"Could not build the PR digest for {label}: {error}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DigestProducer:
    """Builds the digest text for a request."""

    def __init__(self, client: IssueClient, directory: Directory):
        self.client = client
        self.directory = directory

    async def fetch_pull_requests(self, request: DigestRequest) -> List[Issue]:
        """Open pull requests in the request's scope, all orgs fetched at once."""
        if request.organization_filter:
            scope = [request.organization_filter.login]
        else:
            await self.directory.ensure_loaded()
            scope = self.directory.scope()

        per_org = await asyncio.gather(
            *(self.client.fetch_org_issues(org) for org in scope)
        )
        issues = [issue for org_issues in per_org for issue in org_issues]
        return only_pull_requests(issues)

    async def resolve_authors(self, request: DigestRequest) -> Optional[Set[str]]:
        if request.user_filter:
            return {request.user_filter.login}
        if request.team_filter:
            members = await self.client.fetch_team_members(request.team_filter)
            return set(members)
        return None

    async def produce(
        self, request: DigestRequest, now: Optional[datetime] = None
    ) -> DigestResult:
        """Fetch, filter, group and render; a failed fetch yields an error message."""
        try:
            pull_requests = await self.fetch_pull_requests(request)
            authors = await self.resolve_authors(request)
        except FetchError as e:
            logger.error(f"Digest for request #{request.id} failed: {e}")
            return DigestResult(fetch_failed(request, e), is_error=True)

        matched = filter_by_authors(pull_requests, authors)
        logger.info(
            f"Digest for request #{request.id}: {len(matched)} of "
            f"{len(pull_requests)} open PRs matched"
        )
        if not matched:
            return DigestResult(nothing_found(request))
        return DigestResult(render_digest(group_by_author(matched), now))
