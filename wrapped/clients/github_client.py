import logging
from collections.abc import Mapping
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import httpx

from wrapped.stats.models import RepositoryContribution


logger = logging.getLogger(__name__)

USER_AGENT = "github-wrapped"
# Repositories that vanished, went private or are empty are skipped.
SKIPPABLE_COMMIT_STATUSES = {403, 404, 409}

WRAPPED_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    login
    name
    followers {
      totalCount
    }
    contributionsCollection(from: $from, to: $to) {
      totalCommitContributions
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            contributionCount
            date
          }
        }
      }
      commitContributionsByRepository {
        repository {
          name
          nameWithOwner
          languages(first: 10, orderBy: {field: SIZE, direction: DESC}) {
            edges {
              size
              node {
                name
                color
              }
            }
          }
        }
        contributions {
          totalCount
        }
      }
    }
    repositories(
      first: 100
      orderBy: {field: CREATED_AT, direction: DESC}
      ownerAffiliations: OWNER
    ) {
      totalCount
      nodes {
        name
        createdAt
      }
    }
  }
}
"""


class GitHubRateLimitError(Exception):
    """Raised when GitHub reports the API quota is exhausted."""


def year_bounds(year: int) -> tuple[str, str]:
    """Return the ISO timestamps covering the whole calendar year in UTC."""

    return f"{year}-01-01T00:00:00Z", f"{year}-12-31T23:59:59Z"


def is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return (
        response.status_code == 403
        and response.headers.get("x-ratelimit-remaining") == "0"
    )


def is_rate_limit_error(error: object) -> bool:
    if not isinstance(error, Mapping):
        return False
    message = str(error.get("message", "")).lower()
    return error.get("type") == "RATE_LIMITED" or "rate limit" in message


def build_client(
    token: str,
    timeout: float = 20.0,
    base_url: str = "",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    return httpx.Client(
        base_url=base_url,
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        },
        timeout=timeout,
        transport=transport,
    )


def raise_for_github_status(response: httpx.Response) -> None:
    if is_rate_limited(response):
        raise GitHubRateLimitError("GitHub API rate limit exceeded")
    response.raise_for_status()


def fetch_authenticated_user(
    token: str,
    api_base_url: str = "https://api.github.com",
    timeout: float = 15.0,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, str | int]:
    """Fetch basic profile data for the token owner from GitHub REST API."""

    with build_client(token, timeout, api_base_url, transport) as client:
        response = client.get("/user")
    raise_for_github_status(response)

    payload: Any = response.json()
    if not isinstance(payload, Mapping):
        raise ValueError("GitHub user response is invalid")

    raw_id = payload.get("id")
    raw_login = payload.get("login")
    if not isinstance(raw_id, int) or not isinstance(raw_login, str) or not raw_login:
        raise ValueError("GitHub user response is missing required fields")

    return {"id": raw_id, "login": raw_login}


def fetch_analytics_payload(
    username: str,
    token: str,
    graphql_url: str,
    year: int,
    timeout: float = 20.0,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    """Run the wrapped GraphQL query and return the raw `user` object.

    Raises:
        GitHubRateLimitError: If GitHub reports the quota is exhausted.
        ValueError: If the response has no usable `user` object.
    """

    if not token:
        raise ValueError("GitHub token is required for GraphQL requests")

    from_ts, to_ts = year_bounds(year)
    variables = {"login": username, "from": from_ts, "to": to_ts}

    with build_client(token, timeout, transport=transport) as client:
        response = client.post(
            graphql_url,
            json={"query": WRAPPED_QUERY, "variables": variables},
        )
    raise_for_github_status(response)

    payload = response.json()
    if not isinstance(payload, Mapping):
        raise ValueError("GitHub GraphQL response is invalid")

    errors = payload.get("errors")
    if errors:
        if isinstance(errors, list) and any(
            is_rate_limit_error(error) for error in errors
        ):
            raise GitHubRateLimitError("GitHub GraphQL rate limit exceeded")
        raise ValueError("GitHub GraphQL returned errors")

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise ValueError("GitHub GraphQL data is missing")

    user = data.get("user")
    if not isinstance(user, Mapping):
        raise ValueError("GitHub user not found")

    return dict(user)


def fetch_repository_commit_messages(
    client: httpx.Client,
    name_with_owner: str,
    username: str,
    year: int,
    per_page: int,
) -> list[str]:
    """Fetch the user's commit messages for one repository within `year`.

    Inaccessible, missing and empty repositories yield an empty list.
    """

    since, until = year_bounds(year)
    response = client.get(
        f"/repos/{name_with_owner}/commits",
        params={
            "author": username,
            "since": since,
            "until": until,
            "per_page": per_page,
        },
    )
    if response.status_code in SKIPPABLE_COMMIT_STATUSES and not is_rate_limited(
        response
    ):
        logger.debug(
            "Skipping commits of %s (status %s)", name_with_owner, response.status_code
        )
        return []
    raise_for_github_status(response)

    commits = response.json()
    if not isinstance(commits, list):
        raise ValueError("GitHub commits response is invalid")

    messages: list[str] = []
    for item in commits:
        commit = item.get("commit") if isinstance(item, Mapping) else None
        message = commit.get("message") if isinstance(commit, Mapping) else None
        if isinstance(message, str):
            messages.append(message)
    return messages


def select_repositories_to_scan(
    contributions: Sequence[RepositoryContribution], max_repos: int
) -> list[str]:
    """Pick the most contributed repositories, busiest first."""

    ranked = sorted(
        contributions,
        key=lambda contribution: contribution.contributions.total_count,
        reverse=True,
    )
    names: list[str] = []
    for contribution in ranked:
        name_with_owner = contribution.repository.name_with_owner
        if not name_with_owner or "/" not in name_with_owner:
            logger.debug(
                "Repository %s has no owner, skipping", contribution.repository.name
            )
            continue
        names.append(name_with_owner)
        if len(names) >= max_repos:
            break
    return names


def fetch_commit_messages(
    username: str,
    token: str,
    contributions: Sequence[RepositoryContribution],
    year: int,
    api_base_url: str = "https://api.github.com",
    max_repos: int = 50,
    commits_per_repo: int = 30,
    concurrency: int = 8,
    timeout: float = 20.0,
    transport: httpx.BaseTransport | None = None,
) -> list[str]:
    """Sample commit messages across the user's contributed repositories.

    Requests run on a bounded thread pool. A repository that fails for any
    reason other than an invalid token or an exhausted quota is logged and
    skipped. Messages keep the order of the scanned repositories.

    Raises:
        GitHubRateLimitError: If GitHub reports the quota is exhausted.
        httpx.HTTPStatusError: If GitHub rejects the token.
    """

    targets = select_repositories_to_scan(contributions, max_repos)
    if not targets:
        return []

    with build_client(token, timeout, api_base_url, transport) as client:

        def fetch_one(name_with_owner: str) -> list[str]:
            try:
                return fetch_repository_commit_messages(
                    client, name_with_owner, username, year, commits_per_repo
                )
            except GitHubRateLimitError:
                raise
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 401:
                    raise
                logger.warning(
                    "Failed to read commits of %s: status %s",
                    name_with_owner,
                    exc.response.status_code,
                )
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Failed to read commits of %s: %s", name_with_owner, exc)
            return []

        with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
            batches = list(executor.map(fetch_one, targets))

    messages = [message for batch in batches for message in batch]
    logger.info(
        "Sampled %d commit messages from %d repositories", len(messages), len(targets)
    )
    return messages
