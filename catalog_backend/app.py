from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_backend.application import configure_discovery_engine, configure_job_service
from catalog_backend.core.logging_config import configure_logging
from catalog_backend.core.settings import load_settings
from catalog_backend.infrastructure import GeminiRankingOracle, configure_ranking_oracle
from catalog_backend.routes import discovery, health, onboarding, reprocess
from catalog_backend.workers.scheduler import DiscoveryScheduler


def create_app() -> FastAPI:
    settings = load_settings()
    logger = configure_logging(settings.log_level)

    if settings.ranking_oracle_configured:
        configure_ranking_oracle(
            GeminiRankingOracle(api_key=settings.google_ai_api_key, model=settings.ranking_model)
        )
    else:
        logger.warning("GOOGLE_AI_API_KEY not set, category discovery will use fallback scoring")

    configure_job_service(settings)
    engine = configure_discovery_engine(settings)
    scheduler = DiscoveryScheduler(
        engine.run,
        hour=settings.discovery_hour,
        minute=settings.discovery_minute,
        timezone_name=settings.discovery_timezone,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.scheduler_enabled:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.shutdown()

    app = FastAPI(title="Catalog Onboarding API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.discovery_scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(onboarding.router, prefix="/api")
    app.include_router(reprocess.router, prefix="/api")
    app.include_router(discovery.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Catalog Onboarding API",
                "docs": "/docs",
                "health": "/health",
            }
        )

    return app


app = create_app()
