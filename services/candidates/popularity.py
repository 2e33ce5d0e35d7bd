from typing import List

from models import (
    CandidateSource,
    ReasonType,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationReason,
)
from services.analytics.analytics_engine import AnalyticsEngine
from services.candidates.base import CandidateGenerator
from services.catalog.feature_catalog import FeatureCatalog
from services.core.interaction_store import InteractionStore

POPULARITY_CONFIDENCE = 0.7


class PopularityGenerator(CandidateGenerator):
    """Ranks the catalog by effectiveness; also the cold-start fallback for the others."""

    source = CandidateSource.POPULARITY

    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        analytics: AnalyticsEngine,
        weight: float = 0.15,
        max_catalog_size: int = 2000
    ):
        super().__init__(catalog, interactions, weight, fallback=None, max_catalog_size=max_catalog_size)
        self.analytics = analytics

    def _generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        rankings = self.analytics.get_template_rankings(self.catalog_window())

        return [
            self._candidate(
                ranking.template_id,
                ranking.score / 100.0,
                [RecommendationReason(
                    type=ReasonType.SUCCESS_RATE,
                    weight=self.weight,
                    description=f"Highly effective template with {ranking.score}% success rate",
                )],
                context,
                POPULARITY_CONFIDENCE,
            )
            for ranking in rankings[:limit]
        ]
