"""Digest requests, filter references and GitHub issue records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from .recurrence import RecurrenceSpec

PAUSED_PREFIX = "paused => "


class UserRef(BaseModel):
    """A GitHub user, referenced by login."""

    model_config = ConfigDict(frozen=True)

    login: str


class TeamRef(BaseModel):
    """A GitHub team, referenced by id; slug and name are kept for display."""

    model_config = ConfigDict(frozen=True)

    id: int
    slug: str
    name: str
    organization: str


class OrganizationRef(BaseModel):
    """A GitHub organization, referenced by login."""

    model_config = ConfigDict(frozen=True)

    login: str


class DigestRequestRecord(BaseModel):
    """Persisted form of a digest request.

    The ``kind``/``version`` tag lets the subscription store reject anything
    that is not a request record before turning it into a live object.
    """

    model_config = ConfigDict(extra="ignore")

    kind: Literal["digest_request"] = "digest_request"
    version: Literal[1] = 1
    id: int
    room: str
    requested_by: Optional[str] = None
    user: Optional[UserRef] = None
    team: Optional[TeamRef] = None
    organization: Optional[OrganizationRef] = None
    schedule: Optional[str] = None


@dataclass
class DigestRequest:
    """What to report, where, and how often."""

    user_filter: Optional[UserRef] = None
    team_filter: Optional[TeamRef] = None
    organization_filter: Optional[OrganizationRef] = None
    id: Optional[int] = None
    room: Optional[str] = None
    requested_by: Optional[str] = None
    schedule_frequency: Optional[RecurrenceSpec] = None

    # Runtime only; never written to the store.
    scheduled_job: Optional[Any] = field(default=None, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        user_filter: Optional[UserRef] = None,
        team_filter: Optional[TeamRef] = None,
        organization_filter: Optional[OrganizationRef] = None,
    ) -> "DigestRequest":
        return cls(
            user_filter=user_filter,
            team_filter=team_filter,
            organization_filter=organization_filter,
        )

    @classmethod
    def rehydrate(
        cls, serialized: Union[DigestRequestRecord, Dict[str, Any]]
    ) -> "DigestRequest":
        """Build a live request from its persisted form.

        Raises pydantic's ValidationError for malformed records and
        ScheduleSyntaxError for a stored schedule that no longer parses.
        """
        record = (
            serialized
            if isinstance(serialized, DigestRequestRecord)
            else DigestRequestRecord.model_validate(serialized)
        )
        frequency = RecurrenceSpec.parse(record.schedule) if record.schedule else None
        return cls(
            user_filter=record.user,
            team_filter=record.team,
            organization_filter=record.organization,
            id=record.id,
            room=record.room,
            requested_by=record.requested_by,
            schedule_frequency=frequency,
        )

    def to_record(self) -> DigestRequestRecord:
        if self.id is None or self.room is None:
            raise ValueError("Only stored requests (with id and room) can be persisted")
        return DigestRequestRecord(
            id=self.id,
            room=self.room,
            requested_by=self.requested_by,
            user=self.user_filter,
            team=self.team_filter,
            organization=self.organization_filter,
            schedule=self.schedule_frequency.render() if self.schedule_frequency else None,
        )

    @property
    def user_name(self) -> Optional[str]:
        return self.user_filter.login if self.user_filter else None

    @property
    def team_name(self) -> Optional[str]:
        return self.team_filter.name if self.team_filter else None

    @property
    def organization_name(self) -> Optional[str]:
        return self.organization_filter.login if self.organization_filter else None

    @property
    def is_active(self) -> bool:
        return self.scheduled_job is not None

    def effective_frequency(self, default: RecurrenceSpec) -> RecurrenceSpec:
        return self.schedule_frequency or default

    def describe(
        self,
        omit_default_frequency_note: bool = False,
        default_frequency: Optional[RecurrenceSpec] = None,
    ) -> str:
        """Describe the request in a sentence.

        Clauses always come in the order user, team, organization, frequency.
        """
        text = "all PRs"
        if self.user_filter:
            text += f" by {self.user_name}"
        if self.team_filter:
            text += f" from team {self.team_name}"
        if self.organization_filter:
            text += f" in {self.organization_name}"

        if self.schedule_frequency:
            text += f' on schedule "{self.schedule_frequency.render()}"'
        elif not omit_default_frequency_note:
            default = default_frequency or RecurrenceSpec.default()
            text += f" {default.describe_default()}"
        return text

    def short_describe(self) -> str:
        """One line for listing tables."""
        parts = []
        if self.user_filter:
            parts.append(f"user:{self.user_filter.login}")
        if self.team_filter:
            parts.append(f"team:{self.team_filter.slug}")
        if self.organization_filter:
            parts.append(f"org:{self.organization_filter.login}")
        if not parts:
            parts.append("all PRs")

        if self.schedule_frequency:
            parts.append(f'cron:"{self.schedule_frequency.render()}"')
        else:
            parts.append("(default schedule)")

        prefix = "" if self.is_active else PAUSED_PREFIX
        return prefix + " ".join(parts)


@dataclass
class Issue:
    """The fields of a GitHub issue the digest reads."""

    number: int
    title: str
    url: str
    author: str
    updated_at: datetime
    comments: int = 0
    assignee: Optional[str] = None
    is_pull_request: bool = False

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Issue":
        """Build an Issue from a GitHub REST issue object."""
        assignee = payload.get("assignee") or {}
        updated = payload.get("updated_at") or payload.get("created_at")
        return cls(
            number=int(payload.get("number", 0)),
            title=payload.get("title", ""),
            url=payload.get("html_url", ""),
            author=(payload.get("user") or {}).get("login", ""),
            updated_at=datetime.fromisoformat(str(updated).replace("Z", "+00:00")),
            comments=int(payload.get("comments", 0) or 0),
            assignee=assignee.get("login"),
            # GitHub marks pull requests in the issues API with this key
            is_pull_request="pull_request" in payload,
        )
