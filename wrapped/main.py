from fastapi import FastAPI

from wrapped.api.routes.stats import router
from wrapped.core.middleware import RouteRateLimitMiddleware
from wrapped.core.observability import configure_logging
from wrapped.core.observability import init_sentry
from wrapped.settings import Settings


def create_app() -> FastAPI:
    """Build the FastAPI application from environment settings."""

    settings = Settings()
    configure_logging(settings)
    init_sentry(settings)

    app = FastAPI(title="GitHub Wrapped")
    app.add_middleware(
        RouteRateLimitMiddleware,
        limits={
            "/stats/me": settings.stats_rate_limit_per_minute,
            "/wrapped/me": settings.wrapped_rate_limit_per_minute,
        },
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.include_router(router)
    return app


app = create_app()
