from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Response
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials

from wrapped.api.schemas.stats import StatsResponse
from wrapped.core.security import bearer_scheme
from wrapped.core.security import extract_github_token
from wrapped.services.card_service import render_wrapped_card
from wrapped.services.stats_service import GitHubAPIError
from wrapped.services.stats_service import GitHubQuotaExceededError
from wrapped.services.stats_service import InvalidGitHubTokenError
from wrapped.services.stats_service import get_authenticated_user_stats
from wrapped.settings import Settings


router = APIRouter()


def get_settings() -> Settings:
    return Settings()


def load_stats(token: str, settings: Settings) -> StatsResponse:
    """Fetch and compute stats, translating service errors to HTTP errors."""

    try:
        return get_authenticated_user_stats(token=token, settings=settings)
    except InvalidGitHubTokenError as exc:
        raise HTTPException(status_code=401, detail="GitHub token is invalid") from exc
    except GitHubQuotaExceededError as exc:
        raise HTTPException(
            status_code=429,
            detail="GitHub API rate limit exceeded. Please try again later.",
        ) from exc
    except GitHubAPIError as exc:
        raise HTTPException(
            status_code=502, detail="GitHub data temporarily unavailable"
        ) from exc


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "GitHub Wrapped"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/stats/me", response_model=StatsResponse)
def get_authenticated_user_wrapped_stats(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> StatsResponse:
    """Return the yearly wrapped statistics for the authenticated GitHub user."""

    token = extract_github_token(credentials)
    return load_stats(token, settings)


@router.get(
    "/wrapped/me",
    response_class=Response,
    responses={200: {"content": {"image/svg+xml": {}}}},
)
def get_authenticated_user_wrapped_card(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Return the shareable wrapped card as an SVG image.

    The card is served as `image/svg+xml`, not PNG; convert it client-side
    if a raster image is needed.
    """

    token = extract_github_token(credentials)
    stats = load_stats(token, settings)
    return Response(
        content=render_wrapped_card(stats),
        media_type="image/svg+xml",
        headers={"Cache-Control": "private, max-age=300"},
    )
