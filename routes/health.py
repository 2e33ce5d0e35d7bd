from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from routes.dependencies import get_engine
from services.core.recommendation_engine import RecommendationEngine
from utils.circuit_breaker import CircuitState
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "workout-recommender"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def health_check():
    return {
        "status": "healthy",
        "timestamp": _now(),
        "service": SERVICE_NAME
    }


@router.get("/detailed")
def detailed_health_check(engine: RecommendationEngine = Depends(get_engine)):
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": _now(),
        "service": SERVICE_NAME,
        "checks": {}
    }

    stats = engine.stats()
    health_status["checks"]["catalog"] = {
        "status": "healthy" if stats["catalog_size"] else "empty",
        "templates": stats["catalog_size"],
        "version": stats["catalog_version"]
    }
    health_status["checks"]["similarity"] = {
        "status": "healthy" if engine.similarity.is_built() else "not_built",
        **stats["similarity"]
    }
    health_status["checks"]["analytics"] = stats["analytics"]

    persistence = stats["persistence"]
    if persistence is None:
        health_status["checks"]["persistence"] = {"status": "disabled"}
    else:
        breaker_open = persistence["circuit_breaker"]["state"] == CircuitState.OPEN.value
        health_status["checks"]["persistence"] = {
            "status": "unhealthy" if breaker_open else "healthy",
            **persistence
        }
        if breaker_open:
            health_status["status"] = "degraded"

    return health_status


@router.get("/ready")
def readiness_check(engine: RecommendationEngine = Depends(get_engine)):
    checks: Dict[str, Any] = {}

    if engine.similarity.is_built():
        checks["similarity"] = {"status": "ready", "templates": len(engine.catalog)}
    else:
        checks["similarity"] = {"status": "not_ready", "reason": "template_matrix_not_built"}

    writer = engine.writer
    if writer is not None and writer.breaker.state == CircuitState.OPEN:
        checks["persistence_circuit_breaker"] = {"status": "not_ready", "reason": "circuit_open"}
    else:
        checks["persistence_circuit_breaker"] = {"status": "ready"}

    return {
        "ready": all(check["status"] == "ready" for check in checks.values()),
        "checks": checks,
        "timestamp": _now()
    }


@router.get("/live")
def liveness_check():
    return {
        "alive": True,
        "timestamp": _now()
    }
