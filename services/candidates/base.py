from abc import ABC, abstractmethod
from typing import List, Optional

from models import (
    CandidateSource,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationReason,
)
from services.candidates.context_scoring import context_factors_for
from services.catalog.feature_catalog import FeatureCatalog
from services.core.interaction_store import InteractionStore
from utils.logger import setup_logger

logger = setup_logger(__name__)


class CandidateGenerator(ABC):
    """One scoring strategy producing explained candidates for a request.

    Generators with a fallback hand cold-start users (no interaction history)
    to it instead of running their own strategy.
    """

    source: CandidateSource

    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        weight: float,
        fallback: Optional["CandidateGenerator"] = None,
        max_catalog_size: int = 2000
    ):
        self.catalog = catalog
        self.interactions = interactions
        self.weight = weight
        self.fallback = fallback
        self.max_catalog_size = max_catalog_size

    def generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        if self.fallback is not None and not self.interactions.has_history(context.user_id):
            return self._fall_back(context, limit, reason="no_history")

        return self._generate(context, limit)

    @abstractmethod
    def _generate(self, context: RecommendationContext, limit: int) -> List[RecommendationCandidate]:
        ...

    def _fall_back(self, context: RecommendationContext, limit: int, reason: str) -> List[RecommendationCandidate]:
        if self.fallback is None:
            return []

        logger.debug(
            "Generator falling back",
            extra={
                "source": self.source.value,
                "fallback": self.fallback.source.value,
                "user_id": context.user_id,
                "reason": reason
            }
        )
        return self.fallback.generate(context, limit)

    def catalog_window(self) -> List[str]:
        """First `max_catalog_size` ids in catalog order; later templates are never scored."""
        return self.catalog.ids(limit=self.max_catalog_size)

    def _candidate(
        self,
        template_id: str,
        score: float,
        reasons: List[RecommendationReason],
        context: RecommendationContext,
        confidence: float
    ) -> RecommendationCandidate:
        features = self.catalog.get(template_id)
        factors = context_factors_for(features, context) if features is not None else []

        return RecommendationCandidate(
            template_id=template_id,
            score=max(0.0, min(1.0, score)),
            reasons=reasons,
            context_factors=factors,
            confidence=max(0.0, min(1.0, confidence)),
        )
