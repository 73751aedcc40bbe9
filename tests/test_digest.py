"""Tests for digest aggregation and rendering."""

import asyncio

import requests_mock

from prdigest.digest import (
    DigestProducer,
    filter_by_authors,
    group_by_author,
    nothing_found,
    only_pull_requests,
    render_digest,
    render_issue,
)
from prdigest.github import GitHubClient
from prdigest.models import DigestRequest, OrganizationRef, TeamRef, UserRef

BACKEND = TeamRef(id=1, slug="backend", name="Backend", organization="acme")


def test_only_pull_requests_drops_plain_issues(make_issue) -> None:
    pr = make_issue("alice")
    bug = make_issue("alice", pull_request=False)

    assert only_pull_requests([pr, bug]) == [pr]


def test_filter_by_authors(make_issue) -> None:
    alice = make_issue("alice")
    bob = make_issue("Bob")

    assert filter_by_authors([alice, bob], None) == [alice, bob]
    assert filter_by_authors([alice, bob], {"bob"}) == [bob]
    assert filter_by_authors([alice, bob], set()) == []


def test_group_by_author_orders_by_oldest_update(make_issue) -> None:
    # updated t2 (A), t1 (B), t3 (A) with t1 < t2 < t3
    a_t2 = make_issue("A", hours_ago=20)
    b_t1 = make_issue("B", hours_ago=30)
    a_t3 = make_issue("A", hours_ago=10)

    groups = group_by_author([a_t2, b_t1, a_t3])

    assert [login for login, _ in groups] == ["B", "A"]
    assert groups[1][1] == [a_t2, a_t3]


def test_render_issue_line(make_issue, now) -> None:
    issue = make_issue("alice", hours_ago=3, comments=2, assignee="bob", title="Fix it")

    line = render_issue(issue, now)

    assert line == f"• 3 hours ago · 2 comments · bob · Fix it <{issue.url}>"


def test_render_issue_marks_stale_and_unassigned(make_issue, now) -> None:
    issue = make_issue("alice", hours_ago=72, comments=1, title="Old")

    line = render_issue(issue, now)

    assert line.startswith("• _3 days ago_ · 1 comment · unassigned · Old")


def test_render_digest_has_header_per_author(make_issue, now) -> None:
    groups = group_by_author([make_issue("alice"), make_issue("bob"), make_issue("alice")])

    lines = render_digest(groups, now).splitlines()

    assert lines[0] == "*alice*"
    assert lines.count("*alice*") == 1
    assert "*bob*" in lines
    assert len(lines) == 5


def test_nothing_found_text() -> None:
    request = DigestRequest.create(user_filter=UserRef(login="alice"))
    assert nothing_found(request) == "Nothing found for " + request.describe(True)
    assert nothing_found(request) == "Nothing found for all PRs by alice"


def test_produce_fetches_every_known_org(fake_github, directory, make_issue, now) -> None:
    fake_github.issues = {
        "acme": [make_issue("alice", hours_ago=2)],
        "globex": [make_issue("carol", hours_ago=5), make_issue("carol", pull_request=False)],
    }
    producer = DigestProducer(fake_github, directory)

    result = asyncio.run(producer.produce(DigestRequest.create(), now))

    assert not result.is_error
    assert result.text.splitlines()[0] == "*carol*"
    assert "*alice*" in result.text
    assert fake_github.calls.count("fetch_org_issues") == 2


def test_produce_with_org_filter_skips_directory(fake_github, directory, make_issue, now) -> None:
    fake_github.issues = {"acme": [make_issue("alice")], "globex": [make_issue("carol")]}
    request = DigestRequest.create(organization_filter=OrganizationRef(login="acme"))

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request, now))

    assert "*alice*" in result.text
    assert "carol" not in result.text
    assert "fetch_user_orgs" not in fake_github.calls


def test_team_filter_keeps_only_members(fake_github, directory, make_issue, now) -> None:
    fake_github.issues = {
        "acme": [make_issue("alice"), make_issue("bob")],
        "globex": [make_issue("carol")],
    }
    request = DigestRequest.create(team_filter=BACKEND)

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request, now))

    assert "*alice*" in result.text
    assert "bob" not in result.text
    assert "carol" not in result.text


def test_user_filter(fake_github, directory, make_issue, now) -> None:
    fake_github.issues = {"acme": [make_issue("alice"), make_issue("bob")], "globex": []}
    request = DigestRequest.create(user_filter=UserRef(login="bob"))

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request, now))

    assert result.text.splitlines()[0] == "*bob*"
    assert "alice" not in result.text


def test_empty_result_is_single_line(fake_github, directory, make_issue, now) -> None:
    fake_github.issues = {"acme": [make_issue("bob")], "globex": []}
    request = DigestRequest.create(user_filter=UserRef(login="alice"))

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request, now))

    assert result.text == "Nothing found for all PRs by alice"
    assert not result.is_error


def test_fetch_failure_reports_request_id(fake_github, directory) -> None:
    fake_github.failing = {"fetch_org_issues"}
    request = DigestRequest.create()
    request.id = 17

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request))

    assert result.is_error
    assert "request #17" in result.text
    assert "*" not in result.text


def test_team_member_failure_aborts_digest(fake_github, directory, make_issue) -> None:
    fake_github.issues = {"acme": [make_issue("alice")], "globex": []}
    fake_github.failing = {"fetch_team_members"}
    request = DigestRequest.create(team_filter=BACKEND)
    request.id = 3

    result = asyncio.run(DigestProducer(fake_github, directory).produce(request))

    assert result.is_error
    assert "request #3" in result.text


def test_malformed_github_payload_becomes_error_result(directory) -> None:
    api = "https://api.github.test"
    payload = {
        "number": 1,
        "title": "Broken",
        "html_url": "https://github.com/acme/app/pull/1",
        "user": {"login": "alice"},
        "updated_at": None,
        "pull_request": {},
    }
    request = DigestRequest.create(organization_filter=OrganizationRef(login="acme"))
    request.id = 21

    with requests_mock.Mocker() as m:
        m.get(f"{api}/orgs/acme/issues", json=[payload])
        producer = DigestProducer(GitHubClient(token="ghp_test", api_url=api), directory)

        result = asyncio.run(producer.produce(request))

    assert result.is_error
    assert "request #21" in result.text
