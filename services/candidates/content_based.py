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

MISSING_FEATURES_CONFIDENCE = 0.3


class ContentBasedGenerator(CandidateGenerator):
    """Neighbors of the user's liked templates in the template similarity matrix."""

    source = CandidateSource.CONTENT_BASED

    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        similarity: SimilarityEngine,
        weight: float = 0.35,
        liked_threshold: float = 0.5,
        similarity_floor: float = 0.3,
        fallback: Optional[CandidateGenerator] = None,
        max_catalog_size: int = 2000
    ):
        super().__init__(catalog, interactions, weight, fallback=fallback, max_catalog_size=max_catalog_size)
        self.similarity = similarity
        self.liked_threshold = liked_threshold
        self.similarity_floor = similarity_floor

    def _generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        mine = self.interactions.get_user_scores(context.user_id)
        liked = [template_id for template_id, score in mine.items() if score > self.liked_threshold]

        if not liked:
            return self._fall_back(context, limit, reason="no_liked_templates")

        allowed = set(self.catalog_window())
        accumulated: Dict[str, Tuple[float, List[RecommendationReason]]] = {}

        for liked_id in liked:
            for candidate_id, similarity in self.similarity.similar_templates(liked_id, min_similarity=self.similarity_floor):
                if candidate_id in mine or candidate_id not in allowed:
                    continue

                score, reasons = accumulated.get(candidate_id, (0.0, []))
                reasons.append(RecommendationReason(
                    type=ReasonType.CONTENT_SIMILARITY,
                    weight=similarity,
                    description=f"Similar to templates you've enjoyed ({round_half_up(similarity * 100)}% match)",
                ))
                accumulated[candidate_id] = (score + similarity * self.weight, reasons)

        ranked = sorted(accumulated.items(), key=lambda item: item[1][0], reverse=True)[:limit]

        return [
            self._candidate(template_id, min(1.0, score), reasons, context, self.confidence(template_id))
            for template_id, (score, reasons) in ranked
        ]

    def confidence(self, template_id: str) -> float:
        features = self.catalog.get(template_id)
        if features is None:
            return MISSING_FEATURES_CONFIDENCE
        return 0.4 + features.completeness * 0.4
