from fastapi import HTTPException, Request

from services.core.recommendation_engine import RecommendationEngine


def get_engine(request: Request) -> RecommendationEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(503, "recommendation engine not initialized")
    return engine
