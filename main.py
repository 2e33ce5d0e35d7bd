from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from config.config_loader import apply_to_settings, init_config_loader
from middleware.logging_middleware import CorrelationIdMiddleware, RequestTimingMiddleware
from routes.api import router as api_router
from routes.health import router as health_router
from routes.metrics import router as metrics_router
from services.core.recommendation_engine import RecommendationEngine
from services.infrastructure.scheduled_rebuild import ScheduledSimilarityRebuild
from services.persistence import build_gateway
from utils.logger import set_log_level, setup_logger
from utils.prometheus_metrics import init_prometheus_metrics

logger = setup_logger(__name__)


def build_engine() -> RecommendationEngine:
    if settings.CONFIG_PATH:
        loader = init_config_loader(Path(settings.CONFIG_PATH))
        apply_to_settings(loader.load(), settings)
        set_log_level(settings.LOG_LEVEL)
        logger.info("YAML configuration applied", extra={"config_path": settings.CONFIG_PATH})

    metrics = init_prometheus_metrics(enabled=settings.ENABLE_PROMETHEUS)
    gateway = build_gateway(
        settings.PERSISTENCE_BACKEND,
        snapshot_path=settings.SNAPSHOT_PATH,
        key=settings.SNAPSHOT_KEY
    )

    engine = RecommendationEngine.from_settings(settings, gateway=gateway, metrics=metrics)
    warm = engine.warm_start()
    logger.info(
        "Recommendation engine ready",
        extra={"persistence_backend": gateway.name, "warm_start": warm, **engine.stats()}
    )
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application lifespan")

    owns_engine = getattr(app.state, "engine", None) is None
    if owns_engine:
        app.state.engine = build_engine()
    engine: RecommendationEngine = app.state.engine

    scheduler: Optional[ScheduledSimilarityRebuild] = None
    if settings.SIMILARITY_REBUILD_INTERVAL_MINUTES > 0:
        scheduler = ScheduledSimilarityRebuild(engine, interval_minutes=settings.SIMILARITY_REBUILD_INTERVAL_MINUTES)
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()

    if owns_engine:
        engine.flush_persistence()
        engine.shutdown()

    logger.info("Application shutdown complete")


def create_app(engine: Optional[RecommendationEngine] = None) -> FastAPI:
    app = FastAPI(
        title="Workout Template Recommender",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    if engine is not None:
        app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    app.include_router(health_router)
    app.include_router(metrics_router)

    @app.get("/")
    def root():
        return {"app": "workout-recommender", "status": "running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
