from typing import Dict, List, Optional, Tuple

from models import (
    CandidateSource,
    ReasonType,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationReason,
)
from services.analytics.analytics_engine import round_half_up
from services.candidates.base import CandidateGenerator
from services.catalog.feature_catalog import FeatureCatalog
from services.core.interaction_store import InteractionStore
from services.core.similarity_engine import SimilarityEngine

CONFIDENCE_NEIGHBORS = 5
NO_HISTORY_CONFIDENCE = 0.3


class CollaborativeGenerator(CandidateGenerator):
    """Templates liked by the user's nearest neighbors that the user has not touched."""

    source = CandidateSource.COLLABORATIVE

    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        similarity: SimilarityEngine,
        weight: float = 0.40,
        neighbor_count: int = 10,
        liked_threshold: float = 0.5,
        fallback: Optional[CandidateGenerator] = None,
        max_catalog_size: int = 2000
    ):
        super().__init__(catalog, interactions, weight, fallback=fallback, max_catalog_size=max_catalog_size)
        self.similarity = similarity
        self.neighbor_count = neighbor_count
        self.liked_threshold = liked_threshold

    def _generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        mine = self.interactions.get_user_scores(context.user_id)
        neighbors = self.similarity.top_similar_users(context.user_id, k=self.neighbor_count)
        allowed = set(self.catalog_window())

        accumulated: Dict[str, Tuple[float, List[RecommendationReason]]] = {}

        for neighbor_id, similarity in neighbors:
            for template_id, rating in self.interactions.get_user_scores(neighbor_id).items():
                if template_id in mine or template_id not in allowed:
                    continue
                if rating <= self.liked_threshold:
                    continue

                score, reasons = accumulated.get(template_id, (0.0, []))
                reasons.append(RecommendationReason(
                    type=ReasonType.SIMILAR_USERS,
                    weight=similarity,
                    description=f"Users with similar preferences rated this highly ({round_half_up(rating * 10)}/10)",
                ))
                accumulated[template_id] = (score + rating * similarity * self.weight, reasons)

        confidence = self.confidence(context.user_id)
        ranked = sorted(accumulated.items(), key=lambda item: item[1][0], reverse=True)[:limit]

        return [
            self._candidate(template_id, min(1.0, score), reasons, context, confidence)
            for template_id, (score, reasons) in ranked
        ]

    def confidence(self, user_id: str) -> float:
        if not self.interactions.has_history(user_id):
            return NO_HISTORY_CONFIDENCE

        closest = self.similarity.top_similar_users(user_id, k=CONFIDENCE_NEIGHBORS)
        if not closest:
            return 0.5

        average = sum(score for _, score in closest) / len(closest)
        return min(1.0, 0.5 + average)
