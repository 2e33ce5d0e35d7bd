from typing import List, Optional

from models import (
    CandidateSource,
    ReasonType,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationReason,
)
from services.candidates.base import CandidateGenerator
from services.candidates.context_scoring import seasonal_influence
from services.catalog.feature_catalog import FeatureCatalog
from services.core.interaction_store import InteractionStore

CONTEXTUAL_CONFIDENCE = 0.6


class ContextualGenerator(CandidateGenerator):
    """Season-appropriate templates that fit the session's equipment and time."""

    source = CandidateSource.CONTEXTUAL

    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        weight: float = 0.10,
        duration_tolerance: float = 1.2,
        fallback: Optional[CandidateGenerator] = None,
        max_catalog_size: int = 2000
    ):
        super().__init__(catalog, interactions, weight, fallback=fallback, max_catalog_size=max_catalog_size)
        self.duration_tolerance = duration_tolerance

    def _generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        available = set(context.available_equipment)
        max_duration = context.available_time * self.duration_tolerance

        scored = []
        for template_id in self.catalog_window():
            features = self.catalog.get(template_id)
            if features is None:
                continue
            if not set(features.equipment) <= available:
                continue
            if features.duration > max_duration:
                continue
            scored.append((template_id, seasonal_influence(features.type, context.season)))

        scored.sort(key=lambda item: item[1], reverse=True)

        return [
            self._candidate(
                template_id,
                influence,
                [RecommendationReason(
                    type=ReasonType.SEASONAL_TREND,
                    weight=influence,
                    description=f"Optimized for {context.season.value} training phase",
                )],
                context,
                CONTEXTUAL_CONFIDENCE,
            )
            for template_id, influence in scored[:limit]
        ]
