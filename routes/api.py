from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from models import (
    InteractionKind,
    PerformanceRecord,
    Rating010,
    RawTemplate,
    RecommendationContext,
    RecommendationResult,
    SimilarityEdge,
    TemplateAnalyticsSnapshot,
    TemplateFeatureVector,
    TemplateRanking,
    UsageEvent,
)
from routes.dependencies import get_engine
from services.catalog.feature_catalog import UnknownTemplateError
from services.core.recommendation_engine import RecommendationEngine
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter()


class RecommendationRequest(BaseModel):
    context: RecommendationContext
    limit: Optional[int] = Field(None, ge=1, le=100)
    include_alternatives: bool = True


class InteractionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    template_id: str = Field(..., min_length=1)
    kind: InteractionKind
    rating: Optional[Rating010] = None


class TemplateIdsRequest(BaseModel):
    template_ids: List[str] = Field(default_factory=list)


class RankingsRequest(BaseModel):
    template_ids: Optional[List[str]] = None


def _not_found(e: UnknownTemplateError) -> HTTPException:
    return HTTPException(404, f"template not found: {e.template_id}")


@router.post("/recommendations", response_model=RecommendationResult)
def recommend(body: RecommendationRequest, engine: RecommendationEngine = Depends(get_engine)):
    try:
        return engine.recommend(body.context, limit=body.limit, include_alternatives=body.include_alternatives)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/interactions")
def record_interaction(body: InteractionRequest, engine: RecommendationEngine = Depends(get_engine)):
    try:
        score = engine.record_interaction(body.user_id, body.template_id, body.kind, body.rating)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"user_id": body.user_id, "template_id": body.template_id, "score": score}


@router.post("/usage", status_code=status.HTTP_202_ACCEPTED)
def track_usage(event: UsageEvent, engine: RecommendationEngine = Depends(get_engine)):
    engine.track_usage(event)
    return {"status": "accepted", "template_id": event.template_id}


@router.post("/performance", status_code=status.HTTP_202_ACCEPTED)
def record_performance(record: PerformanceRecord, engine: RecommendationEngine = Depends(get_engine)):
    engine.record_performance(record)
    return {"status": "accepted", "template_id": record.template_id}


@router.get("/analytics/{template_id}", response_model=TemplateAnalyticsSnapshot)
def template_analytics(template_id: str, engine: RecommendationEngine = Depends(get_engine)):
    try:
        return engine.get_analytics(template_id)
    except UnknownTemplateError as e:
        raise _not_found(e)


@router.get("/analytics/{template_id}/export")
def export_template_analytics(template_id: str, engine: RecommendationEngine = Depends(get_engine)):
    try:
        payload = engine.export_analytics(template_id)
    except UnknownTemplateError as e:
        raise _not_found(e)
    return Response(content=payload, media_type="application/json")


@router.post("/analytics/bulk", response_model=Dict[str, TemplateAnalyticsSnapshot])
def bulk_analytics(body: TemplateIdsRequest, engine: RecommendationEngine = Depends(get_engine)):
    return engine.get_bulk_analytics(body.template_ids)


@router.post("/analytics/rankings", response_model=List[TemplateRanking])
def template_rankings(body: RankingsRequest, engine: RecommendationEngine = Depends(get_engine)):
    return engine.get_rankings(body.template_ids)


@router.get("/similarity/{template_a}/{template_b}", response_model=SimilarityEdge)
def explain_similarity(template_a: str, template_b: str, engine: RecommendationEngine = Depends(get_engine)):
    try:
        return engine.explain_similarity(template_a, template_b)
    except UnknownTemplateError as e:
        raise _not_found(e)


@router.post("/catalog")
def refresh_catalog(features: List[TemplateFeatureVector], engine: RecommendationEngine = Depends(get_engine)):
    count = engine.load_catalog(features)
    return {"templates": count, "catalog_version": engine.catalog.version}


@router.post("/catalog/raw")
def refresh_catalog_from_raw(templates: List[RawTemplate], engine: RecommendationEngine = Depends(get_engine)):
    count = engine.load_raw_templates(templates)
    return {"templates": count, "catalog_version": engine.catalog.version}


@router.post("/similarities/rebuild")
def rebuild_similarities(engine: RecommendationEngine = Depends(get_engine)) -> Dict[str, Any]:
    result = engine.rebuild_similarities()
    logger.info("Similarity rebuild requested via API", extra=result)
    return {"status": "completed", **result}
