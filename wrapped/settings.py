from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    github_api_base_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    github_request_timeout_seconds: float = 20.0

    max_repos_to_scan: int = 50
    commits_per_repo: int = 30
    commit_sample_limit: int = 100
    commit_fetch_concurrency: int = 8

    stats_rate_limit_per_minute: int = 10
    wrapped_rate_limit_per_minute: int = 5
    rate_limit_window_seconds: int = 60

    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
