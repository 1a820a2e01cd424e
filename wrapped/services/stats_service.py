import logging
from datetime import UTC
from datetime import datetime

import httpx

from wrapped.api.schemas.stats import StatsResponse
from wrapped.clients.github_client import GitHubRateLimitError
from wrapped.clients.github_client import fetch_analytics_payload
from wrapped.clients.github_client import fetch_authenticated_user
from wrapped.clients.github_client import fetch_commit_messages
from wrapped.settings import Settings
from wrapped.stats.engine import MalformedPayloadError
from wrapped.stats.engine import compute_stats
from wrapped.stats.engine import parse_analytics_payload


logger = logging.getLogger(__name__)


class InvalidGitHubTokenError(Exception):
    """Raised when GitHub rejects the provided token."""


class GitHubAPIError(Exception):
    """Raised when GitHub requests fail for non-auth reasons."""


class GitHubQuotaExceededError(Exception):
    """Raised when GitHub rate limits the requests made for a user."""


def current_year() -> int:
    return datetime.now(UTC).year


def _translate_upstream_error(exc: Exception, auth_statuses: set[int]) -> Exception:
    if isinstance(exc, GitHubRateLimitError):
        return GitHubQuotaExceededError()
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code in auth_statuses:
            return InvalidGitHubTokenError()
    return GitHubAPIError()


def get_authenticated_user_stats(
    token: str,
    settings: Settings,
    reference_year: int | None = None,
) -> StatsResponse:
    """Build the wrapped statistics for the GitHub user linked to token."""

    year = reference_year if reference_year is not None else current_year()
    timeout = settings.github_request_timeout_seconds

    try:
        github_user = fetch_authenticated_user(
            token, api_base_url=settings.github_api_base_url, timeout=timeout
        )
    except Exception as exc:
        raise _translate_upstream_error(exc, {401, 403}) from exc

    username = str(github_user["login"])

    try:
        raw_payload = fetch_analytics_payload(
            username=username,
            token=token,
            graphql_url=settings.github_graphql_url,
            year=year,
            timeout=timeout,
        )
        payload = parse_analytics_payload(raw_payload)
        collection = payload.contributions_collection
        commit_messages = fetch_commit_messages(
            username=username,
            token=token,
            contributions=collection.commit_contributions_by_repository,
            year=year,
            api_base_url=settings.github_api_base_url,
            max_repos=settings.max_repos_to_scan,
            commits_per_repo=settings.commits_per_repo,
            concurrency=settings.commit_fetch_concurrency,
            timeout=timeout,
        )
    except MalformedPayloadError as exc:
        logger.error("GitHub analytics payload rejected: %s", exc)
        raise GitHubAPIError(str(exc)) from exc
    except Exception as exc:
        raise _translate_upstream_error(exc, {401}) from exc

    stats = compute_stats(
        payload, commit_messages[: settings.commit_sample_limit], reference_year=year
    )
    logger.info(
        "Computed wrapped stats for %s (%d commit messages sampled)",
        username,
        min(len(commit_messages), settings.commit_sample_limit),
    )

    return StatsResponse(
        username=username,
        year=year,
        category=stats.category,
        audit_ratio=stats.audit_ratio_percent,
        max_streak=stats.max_streak,
        total_commits=stats.total_commits,
        created_this_year=stats.created_this_year,
        followers=stats.followers,
        top_languages=stats.top_languages,
    )
