from datetime import date
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class GraphQLModel(BaseModel):
    """Immutable snapshot of a GitHub GraphQL object.

    Fields are declared in snake_case and read from GitHub's camelCase keys.
    Unknown keys are ignored so the query can grow without breaking parsing.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ContributionDay(GraphQLModel):
    date: date
    contribution_count: int = Field(alias="contributionCount", ge=0)


class ContributionWeek(GraphQLModel):
    contribution_days: list[ContributionDay] = Field(alias="contributionDays")


class ContributionCalendar(GraphQLModel):
    weeks: list[ContributionWeek]


class LanguageNode(GraphQLModel):
    name: str
    color: str | None = None


class LanguageEdge(GraphQLModel):
    size: int = Field(ge=0)
    node: LanguageNode


class LanguageConnection(GraphQLModel):
    edges: list[LanguageEdge]


class ContributedRepository(GraphQLModel):
    name: str
    name_with_owner: str | None = Field(default=None, alias="nameWithOwner")
    languages: LanguageConnection


class ContributionCount(GraphQLModel):
    total_count: int = Field(alias="totalCount", ge=0)


class RepositoryContribution(GraphQLModel):
    """One repository the user committed to, with its language composition."""

    repository: ContributedRepository
    contributions: ContributionCount


class ContributionsCollection(GraphQLModel):
    total_commit_contributions: int = Field(alias="totalCommitContributions", ge=0)
    contribution_calendar: ContributionCalendar = Field(alias="contributionCalendar")
    commit_contributions_by_repository: list[RepositoryContribution] = Field(
        alias="commitContributionsByRepository"
    )


class RepositoryMeta(GraphQLModel):
    name: str
    created_at: datetime = Field(alias="createdAt")


class RepositoryConnection(GraphQLModel):
    nodes: list[RepositoryMeta]


class FollowerConnection(GraphQLModel):
    total_count: int = Field(alias="totalCount", ge=0)


class AnalyticsPayload(GraphQLModel):
    """The `user` object returned by the wrapped GraphQL query."""

    contributions_collection: ContributionsCollection = Field(
        alias="contributionsCollection"
    )
    repositories: RepositoryConnection
    followers: FollowerConnection

    def activity_days(self) -> list[ContributionDay]:
        """Flatten the weekly calendar into a single list of days."""

        return [
            day
            for week in self.contributions_collection.contribution_calendar.weeks
            for day in week.contribution_days
        ]


class CommitStyle(StrEnum):
    ARCHITECT = "Commit Architect"
    POET = "Software Poet"


class TopLanguage(BaseModel):
    """Language share of the total bytes across contributed repositories."""

    model_config = ConfigDict(frozen=True)

    name: str
    color: str | None
    percentage: float


class DerivedStats(BaseModel):
    """Statistics computed from one analytics payload and commit sample."""

    model_config = ConfigDict(frozen=True)

    max_streak: int = Field(ge=0)
    category: CommitStyle
    audit_ratio_percent: str
    top_languages: list[TopLanguage]
    created_this_year: int = Field(ge=0)
    total_commits: int = Field(ge=0)
    followers: int = Field(ge=0)
