from services.ranking.hybrid_ranker import DEFAULT_SOURCE_WEIGHTS, HybridRanker

__all__ = [
    "DEFAULT_SOURCE_WEIGHTS",
    "HybridRanker",
]
