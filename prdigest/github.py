"""GitHub REST client used to fetch open issues, members, teams and orgs."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from .errors import FetchError
from .models import Issue, OrganizationRef, TeamRef

logger = logging.getLogger(__name__)

PER_PAGE = 100

T = TypeVar("T")


def _login(item: Dict[str, Any]) -> str:
    return item["login"]


class GitHubClient:
    """Thin wrapper around the GitHub REST API.

    Blocking ``requests`` calls run in a worker thread so the public ``fetch_*``
    coroutines never block the event loop. Every failure surfaces as FetchError.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": "prdigest/1.0 (Slack PR digest bot)",
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    async def fetch_org_issues(self, org: str) -> List[Issue]:
        """Open issues and pull requests across an organization's repositories."""
        return await self._fetch(
            f"/orgs/{org}/issues",
            Issue.from_api,
            {"filter": "all", "state": "open"},
        )

    async def fetch_org_members(self, org: str) -> List[str]:
        return await self._fetch(f"/orgs/{org}/members", _login)

    async def fetch_team_members(self, team: TeamRef) -> List[str]:
        return await self._fetch(
            f"/orgs/{team.organization}/teams/{team.slug}/members", _login
        )

    async def fetch_user_orgs(self) -> List[OrganizationRef]:
        return await self._fetch(
            "/user/orgs", lambda item: OrganizationRef(login=item["login"])
        )

    async def fetch_org_teams(self, org: str) -> List[TeamRef]:
        return await self._fetch(
            f"/orgs/{org}/teams",
            lambda item: TeamRef(
                id=item["id"],
                slug=item["slug"],
                name=item.get("name") or item["slug"],
                organization=org,
            ),
        )

    async def _fetch(
        self,
        path: str,
        convert: Callable[[Dict[str, Any]], T],
        params: Optional[Dict[str, Any]] = None,
    ) -> List[T]:
        """Fetch every page of ``path`` and convert each item.

        An item missing a field we read is reported as FetchError like any
        other bad response.
        """
        items = await asyncio.to_thread(self._get_paginated, path, params)
        try:
            return [convert(item) for item in items]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed GitHub item from {path}: {e!r}")
            raise FetchError(f"GitHub returned a malformed item for {path}: {e!r}") from e

    def _get_paginated(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """GET every page of a list endpoint, following ``Link: rel=next``."""
        url: Optional[str] = f"{self.api_url}{path}"
        query: Optional[Dict[str, Any]] = {**(params or {}), "per_page": PER_PAGE}
        results: List[Dict[str, Any]] = []

        while url:
            try:
                response = self.session.get(url, params=query, timeout=self.timeout)
                response.raise_for_status()
                page = response.json()
            except ValueError as e:
                # requests' JSONDecodeError is also a RequestException
                raise FetchError(f"GitHub returned invalid JSON for {path}") from e
            except requests.exceptions.RequestException as e:
                logger.error(f"GitHub request failed for {path}: {e}")
                raise FetchError(f"GitHub request failed for {path}: {e}") from e

            if not isinstance(page, list):
                raise FetchError(f"GitHub returned an unexpected payload for {path}")

            results.extend(page)
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            query = None

        logger.debug(f"Fetched {len(results)} items from {path}")
        return results
