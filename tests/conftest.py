"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests_mock

from prdigest.config import Settings
from prdigest.database import KeyValueStore, create_key_value_store
from prdigest.digest import DigestProducer
from prdigest.directory import Directory
from prdigest.errors import FetchError
from prdigest.events import DigestReady, EventBus
from prdigest.models import Issue, OrganizationRef, TeamRef
from prdigest.notifiers.slack import POST_MESSAGE_URL, SlackNotifier
from prdigest.recurrence import RecurrenceSpec
from prdigest.scheduler import SchedulerEngine
from prdigest.service import DigestService
from prdigest.subscriptions import SubscriptionStore

NOW = datetime(2024, 3, 6, 12, 0, tzinfo=timezone.utc)


class MemoryBackend:
    """Dict-backed stand-in for the SQLite key-value store."""

    def __init__(self) -> None:
        self.data: Dict[str, Any] = {}
        self.writes = 0

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.writes += 1
        self.data[key] = value


class FakeGitHub:
    """In-memory GitHub client; names in ``failing`` raise FetchError."""

    def __init__(self) -> None:
        self.orgs: List[str] = ["acme", "globex"]
        self.teams: Dict[str, List[TeamRef]] = {
            "acme": [TeamRef(id=1, slug="backend", name="Backend", organization="acme")],
            "globex": [TeamRef(id=2, slug="ops", name="Ops", organization="globex")],
        }
        self.members: Dict[str, List[str]] = {
            "acme": ["alice", "bob"],
            "globex": ["carol"],
        }
        self.team_members: Dict[int, List[str]] = {1: ["alice"], 2: ["carol"]}
        self.issues: Dict[str, List[Issue]] = {"acme": [], "globex": []}
        self.failing: set = set()
        self.calls: List[str] = []

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise FetchError(f"{name} failed")

    async def fetch_user_orgs(self) -> List[OrganizationRef]:
        self._call("fetch_user_orgs")
        return [OrganizationRef(login=org) for org in self.orgs]

    async def fetch_org_teams(self, org: str) -> List[TeamRef]:
        self._call("fetch_org_teams")
        return self.teams.get(org, [])

    async def fetch_org_members(self, org: str) -> List[str]:
        self._call("fetch_org_members")
        return self.members.get(org, [])

    async def fetch_team_members(self, team: TeamRef) -> List[str]:
        self._call("fetch_team_members")
        return self.team_members.get(team.id, [])

    async def fetch_org_issues(self, org: str) -> List[Issue]:
        self._call("fetch_org_issues")
        return self.issues.get(org, [])


@pytest.fixture
def now() -> datetime:
    """Fixed clock used by issue factories and rendering."""
    return NOW


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Factory for pull request records, ``hours_ago`` relative to NOW."""
    counter = iter(range(1, 10_000))

    def factory(
        author: str,
        hours_ago: float = 1,
        pull_request: bool = True,
        comments: int = 0,
        assignee: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Issue:
        number = next(counter)
        return Issue(
            number=number,
            title=title or f"Change {number}",
            url=f"https://github.com/acme/app/pull/{number}",
            author=author,
            updated_at=NOW - timedelta(hours=hours_ago),
            comments=comments,
            assignee=assignee,
            is_pull_request=pull_request,
        )

    return factory


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def directory(fake_github: FakeGitHub) -> Directory:
    return Directory(fake_github)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def kv_store(tmp_path: Path) -> KeyValueStore:
    return create_key_value_store(str(tmp_path / "prdigest.db"))


@pytest.fixture
def store(memory_backend: MemoryBackend) -> SubscriptionStore:
    return SubscriptionStore(memory_backend)


@pytest.fixture
def engine() -> SchedulerEngine:
    # Never started: jobs stay pending so tests can inspect and fire them.
    return SchedulerEngine(RecurrenceSpec.default(9, 0), timezone="UTC")


@pytest.fixture
def delivered() -> List[DigestReady]:
    return []


@pytest.fixture
def service(
    store: SubscriptionStore,
    engine: SchedulerEngine,
    fake_github: FakeGitHub,
    directory: Directory,
    delivered: List[DigestReady],
) -> DigestService:
    bus = EventBus()
    bus.subscribe(delivered.append)
    return DigestService(
        store=store,
        engine=engine,
        producer=DigestProducer(fake_github, directory),
        directory=directory,
        bus=bus,
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        database_file=str(tmp_path / "prdigest.db"),
        github_token="ghp_test",
        slack_bot_token="xoxb-test",
        log_level="DEBUG",
        dry_run=False,
    )


@pytest.fixture
def mock_slack_api():
    """Mock Slack chat.postMessage."""
    with requests_mock.Mocker() as m:
        m.post(POST_MESSAGE_URL, json={"ok": True})
        yield m


@pytest.fixture
def slack_notifier() -> SlackNotifier:
    return SlackNotifier("xoxb-test")


@pytest.fixture
def job_ids() -> Callable[[SchedulerEngine], List[str]]:
    """Ids of the jobs an engine currently holds."""

    def collect(engine: SchedulerEngine) -> List[str]:
        return sorted(job.id for job in engine.scheduler.get_jobs())

    return collect
