from services.core.interaction_store import InteractionStore, apply_interaction
from services.core.similarity_engine import SimilarityEngine
from services.core.recommendation_engine import RecommendationEngine

__all__ = [
    "InteractionStore",
    "apply_interaction",
    "SimilarityEngine",
    "RecommendationEngine",
]
