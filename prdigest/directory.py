"""Cache of the organizations and teams the bot's GitHub token can see."""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol

from .errors import ValidationError
from .models import OrganizationRef, TeamRef, UserRef

logger = logging.getLogger(__name__)


class DirectoryClient(Protocol):
    async def fetch_user_orgs(self) -> List[OrganizationRef]: ...

    async def fetch_org_teams(self, org: str) -> List[TeamRef]: ...

    async def fetch_org_members(self, org: str) -> List[str]: ...


class Directory:
    """Known organizations and their teams, used to validate command filters.

    Loaded on first use and refreshed on demand; members are always fetched
    live because they change more often than teams.
    """

    def __init__(self, client: DirectoryClient):
        self.client = client
        self.organizations: List[OrganizationRef] = []
        self.teams: Dict[str, List[TeamRef]] = {}
        self._loaded = False

    async def refresh(self) -> None:
        organizations = await self.client.fetch_user_orgs()
        team_lists = await asyncio.gather(
            *(self.client.fetch_org_teams(org.login) for org in organizations)
        )
        self.organizations = organizations
        self.teams = {
            org.login: teams for org, teams in zip(organizations, team_lists)
        }
        self._loaded = True
        logger.info(
            f"Directory refreshed: {len(organizations)} organizations, "
            f"{sum(len(t) for t in team_lists)} teams"
        )

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.refresh()

    def scope(self, organization: Optional[OrganizationRef] = None) -> List[str]:
        """Organization logins a request covers."""
        if organization:
            return [organization.login]
        return [org.login for org in self.organizations]

    def resolve_organization(self, login: str) -> OrganizationRef:
        for org in self.organizations:
            if org.login.lower() == login.lower():
                return org
        raise ValidationError(f"Unknown organization: {login}")

    def resolve_team(
        self, name: str, organization: Optional[OrganizationRef] = None
    ) -> TeamRef:
        wanted = name.lower()
        for org_login in self.scope(organization):
            for team in self.teams.get(org_login, []):
                if team.slug.lower() == wanted or team.name.lower() == wanted:
                    return team
        where = organization.login if organization else "any known organization"
        raise ValidationError(f"Team {name} not found in {where}")

    async def resolve_user(
        self, login: str, organization: Optional[OrganizationRef] = None
    ) -> UserRef:
        orgs = self.scope(organization)
        member_lists = await asyncio.gather(
            *(self.client.fetch_org_members(org) for org in orgs)
        )
        for members in member_lists:
            for member in members:
                if member.lower() == login.lower():
                    return UserRef(login=member)
        where = organization.login if organization else "any known organization"
        raise ValidationError(f"User {login} not found in {where}")
