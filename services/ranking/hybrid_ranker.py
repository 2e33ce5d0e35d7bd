"""
Merges generator output, enforces hard contextual constraints and produces the
final ranked, explained RecommendationResult.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from models import (
    AlgorithmTag,
    CandidateSource,
    ConfidenceLevel,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationExplanation,
    RecommendationMetadata,
    RecommendationReason,
    RecommendationResult,
    TemplateFeatureVector,
    utcnow,
)
from services.analytics.analytics_engine import AnalyticsEngine, round_half_up
from services.catalog.feature_catalog import FeatureCatalog
from utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_SOURCE_WEIGHTS: Dict[CandidateSource, float] = {
    CandidateSource.COLLABORATIVE: 0.40,
    CandidateSource.CONTENT_BASED: 0.35,
    CandidateSource.POPULARITY: 0.15,
    CandidateSource.CONTEXTUAL: 0.10,
}

FALLBACK_PRIMARY_REASON = "Popular choice among users"
MAX_LISTED_EQUIPMENT = 3
MAX_DIFFICULTY_GAP = 1

DiversityPenalty = Callable[[RecommendationCandidate, RecommendationContext], float]


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class _MergedCandidate:
    def __init__(self, candidate: RecommendationCandidate, weighted_score: float):
        self.template_id = candidate.template_id
        self.score = weighted_score
        self.reasons: List[RecommendationReason] = list(candidate.reasons)
        self.context_factors = list(candidate.context_factors)
        self.confidences = [candidate.confidence]

    def absorb(self, candidate: RecommendationCandidate, weighted_score: float):
        self.score = max(self.score, weighted_score)
        for reason in candidate.reasons:
            # a cold-start user gets the same popularity reason from every source
            if reason not in self.reasons:
                self.reasons.append(reason)
        self.confidences.append(candidate.confidence)

    def to_candidate(self) -> RecommendationCandidate:
        return RecommendationCandidate(
            template_id=self.template_id,
            score=_clamp01(self.score),
            reasons=self.reasons,
            context_factors=self.context_factors,
            confidence=_clamp01(sum(self.confidences) / len(self.confidences)),
        )


class HybridRanker:
    def __init__(
        self,
        catalog: FeatureCatalog,
        analytics: AnalyticsEngine,
        source_weights: Optional[Dict[CandidateSource, float]] = None,
        duration_tolerance: float = 1.2,
        recency_boost: float = 1.1,
        recency_window_days: int = 7,
        alternatives_count: int = 5,
        diversity_penalty: Optional[DiversityPenalty] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.catalog = catalog
        self.analytics = analytics
        self.source_weights = dict(source_weights or DEFAULT_SOURCE_WEIGHTS)
        self.duration_tolerance = duration_tolerance
        self.recency_boost = recency_boost
        self.recency_window_days = recency_window_days
        self.alternatives_count = alternatives_count
        self.diversity_penalty = diversity_penalty
        self.clock = clock or utcnow

    def merge(
        self,
        batches: Sequence[Tuple[CandidateSource, List[RecommendationCandidate]]]
    ) -> List[RecommendationCandidate]:
        merged: Dict[str, _MergedCandidate] = {}

        for source, candidates in batches:
            weight = self.source_weights[source]
            for candidate in candidates:
                weighted = candidate.score * weight
                existing = merged.get(candidate.template_id)
                if existing is None:
                    merged[candidate.template_id] = _MergedCandidate(candidate, weighted)
                else:
                    existing.absorb(candidate, weighted)

        return [entry.to_candidate() for entry in merged.values()]

    def filter_violation(
        self,
        features: TemplateFeatureVector,
        context: RecommendationContext
    ) -> Optional[str]:
        restrictions = [r.lower() for r in context.medical_restrictions if r]
        for item in features.equipment:
            lowered = item.lower()
            if any(restriction in lowered for restriction in restrictions):
                return "medical_restriction"

        if not set(features.equipment) <= set(context.available_equipment):
            return "equipment_unavailable"

        if features.duration > context.available_time * self.duration_tolerance:
            return "duration_exceeded"

        if features.difficulty.gap(context.player_level) > MAX_DIFFICULTY_GAP:
            return "difficulty_gap"

        return None

    def apply_hard_filters(
        self,
        candidates: List[RecommendationCandidate],
        context: RecommendationContext
    ) -> List[RecommendationCandidate]:
        kept = []
        dropped: Dict[str, int] = {}

        for candidate in candidates:
            features = self.catalog.get(candidate.template_id)
            if features is None:
                dropped["missing_features"] = dropped.get("missing_features", 0) + 1
                continue

            violation = self.filter_violation(features, context)
            if violation is not None:
                dropped[violation] = dropped.get(violation, 0) + 1
                continue

            kept.append(candidate)

        if dropped:
            logger.debug(
                "Hard filters removed candidates",
                extra={"user_id": context.user_id, "dropped": dropped, "kept": len(kept)}
            )

        return kept

    def final_score(self, candidate: RecommendationCandidate, context: RecommendationContext) -> float:
        analytics = self.analytics.get_template_analytics(candidate.template_id)

        score = candidate.score * (1 + analytics.effectiveness_score / 100.0)

        days = self.analytics.days_since_last_use(candidate.template_id)
        if days is not None and days < self.recency_window_days:
            score *= self.recency_boost

        penalty = _clamp01(self.diversity_penalty(candidate, context)) if self.diversity_penalty else 0.0
        score *= (1 - penalty)

        score *= candidate.confidence

        return _clamp01(score)

    def rank(
        self,
        candidates: List[RecommendationCandidate],
        context: RecommendationContext
    ) -> List[RecommendationCandidate]:
        rescored = [
            candidate.model_copy(update={"score": self.final_score(candidate, context)})
            for candidate in candidates
        ]
        rescored.sort(key=lambda candidate: candidate.score, reverse=True)
        return rescored

    def explain(self, candidate: RecommendationCandidate) -> RecommendationExplanation:
        if candidate.reasons:
            primary = max(candidate.reasons, key=lambda reason: reason.weight).description
        else:
            primary = FALLBACK_PRIMARY_REASON

        supporting = [
            f"Good fit for {factor.factor.label}"
            for factor in candidate.context_factors
            if factor.influence > 0.5
        ]

        analytics = self.analytics.get_template_analytics(candidate.template_id)
        if analytics.effectiveness_score > 75:
            supporting.append(f"High effectiveness score ({analytics.effectiveness_score}%)")
        if analytics.average_rating > 0.7:
            supporting.append(f"Highly rated by users ({round_half_up(analytics.average_rating * 10)}/10)")

        return RecommendationExplanation(
            template_id=candidate.template_id,
            primary_reason=primary,
            supporting_factors=supporting,
            confidence_level=ConfidenceLevel.from_confidence(candidate.confidence),
        )

    @staticmethod
    def context_summary(context: RecommendationContext) -> List[str]:
        factors = [
            f"Season: {context.season.value}",
            f"Available time: {context.available_time:g} minutes",
            f"Player level: {context.player_level.value}",
        ]
        if context.available_equipment:
            factors.append(f"Equipment: {', '.join(context.available_equipment[:MAX_LISTED_EQUIPMENT])}")
        if context.medical_restrictions:
            factors.append(f"Restrictions: {len(context.medical_restrictions)} active")
        return factors

    @staticmethod
    def filtering_criteria(context: RecommendationContext) -> List[str]:
        criteria = [f"Duration ≤ {context.available_time:g} minutes"]
        if context.medical_restrictions:
            criteria.append("Medical restrictions applied")
        criteria.append("Equipment availability filtered")
        criteria.append(f"Difficulty level: {context.player_level.value}")
        return criteria

    @staticmethod
    def overall_confidence(recommendations: List[RecommendationCandidate]) -> float:
        if not recommendations:
            return 0.0
        average = sum(candidate.confidence for candidate in recommendations) / len(recommendations)
        return _clamp01(round_half_up(average * 100) / 100.0)

    def build_result(
        self,
        batches: Sequence[Tuple[CandidateSource, List[RecommendationCandidate]]],
        context: RecommendationContext,
        limit: int = 10,
        include_alternatives: bool = True,
        algorithm: AlgorithmTag = AlgorithmTag.HYBRID
    ) -> RecommendationResult:
        if limit < 1:
            raise ValueError("limit must be at least 1")

        merged = self.merge(batches)
        eligible = self.apply_hard_filters(merged, context)
        ranked = self.rank(eligible, context)

        recommendations = ranked[:limit]
        alternatives = ranked[limit:limit + self.alternatives_count] if include_alternatives else []

        return RecommendationResult(
            recommendations=recommendations,
            explanations=[self.explain(candidate) for candidate in recommendations],
            alternative_options=alternatives,
            metadata=RecommendationMetadata(
                algorithm=algorithm,
                confidence=self.overall_confidence(recommendations),
                context_factors=self.context_summary(context),
                filtering_criteria=self.filtering_criteria(context),
                generated_at=self.clock(),
            ),
        )
