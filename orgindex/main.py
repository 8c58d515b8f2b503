from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from orgindex.api.routes.activity import router
from orgindex.clients.github_client import GitHubClient
from orgindex.core.cache import PersistentCache
from orgindex.core.fetcher import RateLimitLatch
from orgindex.core.fetcher import ResilientFetcher
from orgindex.core.observability import configure_logging
from orgindex.core.observability import init_sentry
from orgindex.db import build_engine
from orgindex.db import build_session_factory
from orgindex.db import get_database_url
from orgindex.services.activity_service import OrgActivityService
from orgindex.settings import Settings


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application with its cache, fetcher and service."""

    app_settings = settings or Settings()
    configure_logging(app_settings)
    init_sentry(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(get_database_url(app_settings))
        cache = PersistentCache(
            build_session_factory(engine),
            ttl_seconds=app_settings.cache_ttl_seconds,
            namespace=app_settings.cache_namespace,
        )
        client = GitHubClient(
            api_base_url=app_settings.github_api_base_url,
            token=app_settings.github_token,
            timeout=app_settings.request_timeout_seconds,
        )
        fetcher = ResilientFetcher(
            client,
            cache,
            latch=RateLimitLatch(max_wait_seconds=app_settings.rate_limit_max_wait_seconds),
        )

        app.state.cache = cache
        app.state.activity_service = OrgActivityService(fetcher, app_settings.github_org)
        try:
            yield
        finally:
            await fetcher.aclose()
            await client.aclose()
            engine.dispose()

    app = FastAPI(lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()
