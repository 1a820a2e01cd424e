import re
from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from datetime import UTC
from decimal import ROUND_HALF_UP
from decimal import Decimal

from pydantic import ValidationError

from wrapped.stats.models import AnalyticsPayload
from wrapped.stats.models import CommitStyle
from wrapped.stats.models import ContributionDay
from wrapped.stats.models import DerivedStats
from wrapped.stats.models import RepositoryContribution
from wrapped.stats.models import RepositoryMeta
from wrapped.stats.models import TopLanguage


CONVENTIONAL_COMMIT_PATTERN = re.compile(
    r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)(\(.+\))?: .+",
    re.IGNORECASE,
)
ARCHITECT_THRESHOLD = 0.5
TOP_LANGUAGES_LIMIT = 5


class MalformedPayloadError(ValueError):
    """Raised when the analytics payload lacks a required field."""

    def __init__(self, field_path: str, reason: str) -> None:
        super().__init__(f"analytics payload field '{field_path}' {reason}")
        self.field_path = field_path
        self.reason = reason


def parse_analytics_payload(
    raw_payload: AnalyticsPayload | Mapping[str, object],
) -> AnalyticsPayload:
    """Validate a raw GraphQL `user` mapping into an AnalyticsPayload.

    Raises:
        MalformedPayloadError: If a required branch is absent or has the
            wrong shape. The first offending field is reported.
    """

    if isinstance(raw_payload, AnalyticsPayload):
        return raw_payload
    if not isinstance(raw_payload, Mapping):
        raise MalformedPayloadError("<root>", "must be an object")

    try:
        return AnalyticsPayload.model_validate(raw_payload)
    except ValidationError as exc:
        error = exc.errors()[0]
        field_path = ".".join(str(part) for part in error["loc"]) or "<root>"
        if error["type"] == "missing":
            raise MalformedPayloadError(field_path, "is missing") from exc
        raise MalformedPayloadError(
            field_path, f"is invalid: {error['msg']}"
        ) from exc


def calculate_max_streak(days: Iterable[ContributionDay]) -> int:
    """Return the longest run of consecutive positive-count days.

    Days are sorted by date first; duplicates are kept as separate entries.
    Only an explicit zero-count day breaks a run, gaps in the dates do not.
    """

    max_streak = 0
    current_streak = 0
    for day in sorted(days, key=lambda item: item.date):
        if day.contribution_count > 0:
            current_streak += 1
            max_streak = max(max_streak, current_streak)
        else:
            current_streak = 0
    return max_streak


def is_conventional_commit(message: str) -> bool:
    lines = message.splitlines()
    subject = lines[0] if lines else ""
    return CONVENTIONAL_COMMIT_PATTERN.match(subject) is not None


def format_percent(value: float) -> str:
    """Format with one decimal, rounding exact ties away from zero."""

    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def audit_commit_style(messages: Sequence[str]) -> tuple[str, CommitStyle]:
    """Return the conventional-commit ratio as a percent string and its label.

    An empty sample yields ("0.0", Software Poet).
    """

    if not messages:
        return "0.0", CommitStyle.POET

    standardized_count = sum(
        1 for message in messages if is_conventional_commit(message)
    )
    ratio = standardized_count / len(messages)
    category = (
        CommitStyle.ARCHITECT if ratio >= ARCHITECT_THRESHOLD else CommitStyle.POET
    )
    return format_percent(ratio * 100), category


def language_shares(
    repositories: Iterable[RepositoryContribution],
) -> list[TopLanguage]:
    """Aggregate language bytes across repositories into percentage shares.

    The first color seen for a language is kept. Results are sorted by share,
    descending, with ties in encounter order.
    """

    sizes: dict[str, int] = {}
    colors: dict[str, str | None] = {}
    for contribution in repositories:
        for edge in contribution.repository.languages.edges:
            name = edge.node.name
            if name not in sizes:
                sizes[name] = 0
                colors[name] = edge.node.color
            sizes[name] += edge.size

    total_bytes = sum(sizes.values())
    shares = [
        TopLanguage(
            name=name,
            color=colors[name],
            percentage=(size / total_bytes) * 100 if total_bytes > 0 else 0.0,
        )
        for name, size in sizes.items()
    ]
    return sorted(shares, key=lambda language: language.percentage, reverse=True)


def aggregate_top_languages(
    repositories: Iterable[RepositoryContribution],
    limit: int = TOP_LANGUAGES_LIMIT,
) -> list[TopLanguage]:
    return language_shares(repositories)[:limit]


def count_created_in_year(
    repositories: Iterable[RepositoryMeta], reference_year: int
) -> int:
    """Count repositories created in `reference_year` (UTC calendar)."""

    count = 0
    for repository in repositories:
        created_at = repository.created_at
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(UTC)
        if created_at.year == reference_year:
            count += 1
    return count


def compute_stats(
    analytics_payload: AnalyticsPayload | Mapping[str, object],
    commit_messages: Sequence[str],
    reference_year: int,
) -> DerivedStats:
    """Derive the wrapped statistics from one payload and commit sample.

    The payload is validated before anything is computed, so a malformed
    payload never yields a partially filled result.

    Raises:
        MalformedPayloadError: If the payload lacks a required field.
    """

    payload = parse_analytics_payload(analytics_payload)
    collection = payload.contributions_collection

    audit_ratio_percent, category = audit_commit_style(commit_messages)
    return DerivedStats(
        max_streak=calculate_max_streak(payload.activity_days()),
        category=category,
        audit_ratio_percent=audit_ratio_percent,
        top_languages=aggregate_top_languages(
            collection.commit_contributions_by_repository
        ),
        created_this_year=count_created_in_year(
            payload.repositories.nodes, reference_year
        ),
        total_commits=collection.total_commit_contributions,
        followers=payload.followers.total_count,
    )
