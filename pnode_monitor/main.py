import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, settings as default_settings
from .core.logging_config import configure_logging
from .routers import nodes
from .services.aggregation import AggregationService
from .services.failover import FailoverFetcher
from .services.geo_cache import GeoCache
from .services.ipapi import make_geo_lookup
from .services.prpc import make_roster_fetch
from .services.roster_cache import RosterCache

logger = logging.getLogger(__name__)


def build_service(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> AggregationService:
    """Construye el servicio y sus cachés (una instancia por proceso/app)."""
    fetcher = FailoverFetcher(
        settings.prpc_endpoints,
        make_roster_fetch(settings, client),
        delay_seconds=settings.failover_delay_seconds,
    )
    roster_cache = RosterCache(
        max_stale_age=settings.roster_max_stale_seconds,
        refresh_seconds=settings.roster_refresh_seconds,
    )
    geo_cache = GeoCache(
        make_geo_lookup(settings, client),
        ttl_seconds=settings.geo_ttl_seconds,
        max_entries=settings.geo_cache_max_entries,
    )
    return AggregationService(fetcher, roster_cache, geo_cache, geo_concurrency=settings.geo_concurrency)


def create_app(settings: Settings = default_settings, service: Optional[AggregationService] = None) -> FastAPI:
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is not None:
            app.state.service = service
            yield
            return
        async with httpx.AsyncClient(headers={"User-Agent": settings.user_agent}) as client:
            app.state.service = build_service(settings, client)
            logger.info(f"Polling pRPC endpoints in order: {', '.join(settings.prpc_endpoints)}")
            yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if service is not None:
        app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(nodes.router)

    @app.get("/")
    def root():
        return {
            "name": settings.app_name,
            "env": settings.app_env,
            "message": "OK",
            "endpoints": settings.prpc_endpoints,
        }

    return app


app = create_app()
