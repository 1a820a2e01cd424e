import json
import logging

import httpx
import pytest

from wrapped.clients.github_client import GitHubRateLimitError
from wrapped.clients.github_client import fetch_analytics_payload
from wrapped.clients.github_client import fetch_authenticated_user
from wrapped.clients.github_client import fetch_commit_messages
from wrapped.clients.github_client import select_repositories_to_scan
from wrapped.stats.models import RepositoryContribution


GRAPHQL_URL = "https://api.github.com/graphql"


def make_contribution(name_with_owner: str | None, total: int) -> RepositoryContribution:
    name = name_with_owner.split("/")[-1] if name_with_owner else "orphan"
    return RepositoryContribution.model_validate(
        {
            "repository": {
                "name": name,
                "nameWithOwner": name_with_owner,
                "languages": {"edges": []},
            },
            "contributions": {"totalCount": total},
        }
    )


def commits_body(*messages: str) -> list[dict[str, object]]:
    return [{"sha": str(index), "commit": {"message": m}} for index, m in enumerate(messages)]


def test_fetch_authenticated_user_returns_login() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/user"
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(200, json={"id": 1, "login": "Octocat", "name": "x"})

    user = fetch_authenticated_user("secret", transport=httpx.MockTransport(handler))

    assert user == {"id": 1, "login": "Octocat"}


def test_fetch_authenticated_user_raises_on_rejected_token() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))

    with pytest.raises(httpx.HTTPStatusError):
        fetch_authenticated_user("bad", transport=transport)


def test_fetch_authenticated_user_detects_exhausted_quota() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            403, headers={"x-ratelimit-remaining": "0"}, json={}
        )
    )

    with pytest.raises(GitHubRateLimitError):
        fetch_authenticated_user("secret", transport=transport)


def test_fetch_analytics_payload_queries_whole_year() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content)["variables"])
        return httpx.Response(200, json={"data": {"user": {"login": "octocat"}}})

    user = fetch_analytics_payload(
        username="octocat",
        token="secret",
        graphql_url=GRAPHQL_URL,
        year=2025,
        transport=httpx.MockTransport(handler),
    )

    assert user == {"login": "octocat"}
    assert seen == {
        "login": "octocat",
        "from": "2025-01-01T00:00:00Z",
        "to": "2025-12-31T23:59:59Z",
    }


def test_fetch_analytics_payload_detects_graphql_rate_limit() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            200,
            json={"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}]},
        )
    )

    with pytest.raises(GitHubRateLimitError):
        fetch_analytics_payload("octocat", "secret", GRAPHQL_URL, 2025, transport=transport)


def test_fetch_analytics_payload_rejects_other_graphql_errors() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            200, json={"errors": [{"type": "NOT_FOUND", "message": "no such user"}]}
        )
    )

    with pytest.raises(ValueError, match="returned errors"):
        fetch_analytics_payload("octocat", "secret", GRAPHQL_URL, 2025, transport=transport)


def test_fetch_analytics_payload_requires_user() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"data": {"user": None}})
    )

    with pytest.raises(ValueError, match="user not found"):
        fetch_analytics_payload("octocat", "secret", GRAPHQL_URL, 2025, transport=transport)


def test_fetch_analytics_payload_requires_token() -> None:
    with pytest.raises(ValueError, match="token is required"):
        fetch_analytics_payload("octocat", "", GRAPHQL_URL, 2025)


def test_select_repositories_prefers_most_contributed() -> None:
    contributions = [
        make_contribution("octocat/small", 1),
        make_contribution("octocat/big", 40),
        make_contribution(None, 100),
        make_contribution("octocat/mid", 10),
    ]

    assert select_repositories_to_scan(contributions, max_repos=2) == [
        "octocat/big",
        "octocat/mid",
    ]


def test_fetch_commit_messages_samples_each_repository() -> None:
    requested: list[tuple[str, dict[str, str]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append((request.url.path, dict(request.url.params)))
        if request.url.path == "/repos/octocat/big/commits":
            return httpx.Response(200, json=commits_body("feat: one", "fix: two"))
        return httpx.Response(200, json=commits_body("misc"))

    messages = fetch_commit_messages(
        username="octocat",
        token="secret",
        contributions=[
            make_contribution("octocat/small", 1),
            make_contribution("octocat/big", 9),
        ],
        year=2025,
        commits_per_repo=30,
        concurrency=2,
        transport=httpx.MockTransport(handler),
    )

    assert messages == ["feat: one", "fix: two", "misc"]
    assert sorted(path for path, _ in requested) == [
        "/repos/octocat/big/commits",
        "/repos/octocat/small/commits",
    ]
    assert requested[0][1] == {
        "author": "octocat",
        "since": "2025-01-01T00:00:00Z",
        "until": "2025-12-31T23:59:59Z",
        "per_page": "30",
    }


def test_fetch_commit_messages_skips_inaccessible_repositories(
    caplog: pytest.LogCaptureFixture,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/octocat/gone/commits":
            return httpx.Response(404, json={"message": "Not Found"})
        if request.url.path == "/repos/octocat/empty/commits":
            return httpx.Response(409, json={"message": "Git Repository is empty."})
        if request.url.path == "/repos/octocat/broken/commits":
            return httpx.Response(500, json={})
        return httpx.Response(200, json=commits_body("docs: readme"))

    with caplog.at_level(logging.WARNING):
        messages = fetch_commit_messages(
            username="octocat",
            token="secret",
            contributions=[
                make_contribution("octocat/gone", 4),
                make_contribution("octocat/empty", 3),
                make_contribution("octocat/broken", 2),
                make_contribution("octocat/ok", 1),
            ],
            year=2025,
            transport=httpx.MockTransport(handler),
        )

    assert messages == ["docs: readme"]
    assert "octocat/broken" in caplog.text


def test_fetch_commit_messages_aborts_on_rate_limit() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            403, headers={"x-ratelimit-remaining": "0"}, json={}
        )
    )

    with pytest.raises(GitHubRateLimitError):
        fetch_commit_messages(
            username="octocat",
            token="secret",
            contributions=[make_contribution("octocat/a", 1)],
            year=2025,
            transport=transport,
        )


def test_fetch_commit_messages_aborts_on_rejected_token() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))

    with pytest.raises(httpx.HTTPStatusError):
        fetch_commit_messages(
            username="octocat",
            token="secret",
            contributions=[make_contribution("octocat/a", 1)],
            year=2025,
            transport=transport,
        )


def test_fetch_commit_messages_without_repositories_makes_no_requests() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert (
        fetch_commit_messages(
            username="octocat",
            token="secret",
            contributions=[],
            year=2025,
            transport=httpx.MockTransport(handler),
        )
        == []
    )
