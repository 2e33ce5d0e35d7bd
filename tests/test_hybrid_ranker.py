from datetime import timedelta

import pytest

from models import (
    AlgorithmTag,
    CandidateSource,
    ConfidenceLevel,
    ContextFactor,
    ContextFactorType,
    Difficulty,
    ReasonType,
    RecommendationCandidate,
    RecommendationReason,
    Season,
    WorkoutType,
)
from services.analytics import AnalyticsEngine
from services.catalog import FeatureCatalog
from services.ranking import HybridRanker
from tests.factories import FIXED_NOW, FakeClock, demo_catalog, make_context, make_features, make_performance, make_usage


def _candidate(template_id, score=0.5, confidence=0.8, reasons=None, factors=None):
    return RecommendationCandidate(
        template_id=template_id,
        score=score,
        confidence=confidence,
        reasons=reasons or [],
        context_factors=factors or [],
    )


def _reason(description, weight=0.5, type=ReasonType.SUCCESS_RATE):
    return RecommendationReason(type=type, weight=weight, description=description)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def analytics(clock):
    return AnalyticsEngine(clock=clock)


@pytest.fixture
def ranker(analytics, clock):
    return HybridRanker(FeatureCatalog(demo_catalog()), analytics, clock=clock)


class TestHardFilters:
    def test_template_passes_when_context_fits(self, ranker):
        template = make_features("t1", type=WorkoutType.STRENGTH, duration=30, equipment=["pucks"])
        context = make_context(available_time=30, equipment=["pucks", "cones"], level=Difficulty.INTERMEDIATE)

        assert ranker.filter_violation(template, context) is None

    def test_missing_equipment_filters_template(self, ranker):
        template = make_features("t1", type=WorkoutType.STRENGTH, duration=30, equipment=["pucks"])
        context = make_context(available_time=30, equipment=["cones"])

        assert ranker.filter_violation(template, context) == "equipment_unavailable"
        assert ranker.apply_hard_filters([_candidate("t1")], context) == []

    def test_medical_restriction_matches_equipment_substring(self, ranker):
        template = make_features("t5", equipment=["Barbell"], duration=30)
        context = make_context(equipment=["Barbell"], restrictions=["barbell"])

        assert ranker.filter_violation(template, context) == "medical_restriction"

    def test_duration_tolerance(self, ranker):
        context = make_context(available_time=30, equipment=[])

        assert ranker.filter_violation(make_features("a", duration=36), context) is None
        assert ranker.filter_violation(make_features("b", duration=37), context) == "duration_exceeded"

    def test_difficulty_gap(self, ranker):
        context = make_context(equipment=[], level=Difficulty.BEGINNER)

        assert ranker.filter_violation(make_features("a", difficulty=Difficulty.INTERMEDIATE), context) is None
        assert ranker.filter_violation(make_features("b", difficulty=Difficulty.ADVANCED), context) == "difficulty_gap"

    def test_candidates_without_features_are_dropped(self, ranker):
        kept = ranker.apply_hard_filters([_candidate("t1"), _candidate("ghost")], make_context())
        assert [c.template_id for c in kept] == ["t1"]


class TestMerge:
    def test_max_weighted_score_and_mean_confidence(self, ranker):
        merged = ranker.merge([
            (CandidateSource.COLLABORATIVE, [_candidate("t1", score=0.5, confidence=0.9, reasons=[_reason("a")])]),
            (CandidateSource.POPULARITY, [_candidate("t1", score=1.0, confidence=0.7, reasons=[_reason("b")])]),
        ])

        assert len(merged) == 1
        assert merged[0].score == pytest.approx(0.2)
        assert merged[0].confidence == pytest.approx(0.8)
        assert [r.description for r in merged[0].reasons] == ["a", "b"]

    def test_identical_reasons_are_not_repeated(self, ranker):
        reason = _reason("Highly effective template with 0% success rate")
        merged = ranker.merge([
            (CandidateSource.COLLABORATIVE, [_candidate("t1", reasons=[reason])]),
            (CandidateSource.CONTENT_BASED, [_candidate("t1", reasons=[reason])]),
        ])

        assert len(merged[0].reasons) == 1


class TestScoring:
    def test_final_score_without_analytics(self, ranker):
        assert ranker.final_score(_candidate("t1", score=0.5, confidence=0.8), make_context()) == pytest.approx(0.4)

    def test_effectiveness_and_recency_boost(self, ranker, analytics):
        analytics.record_performance(make_performance("t1", completion=1.0, satisfaction=10))
        analytics.track_usage(make_usage("t1", "u1", FIXED_NOW - timedelta(days=1)))
        effectiveness = analytics.calculate_effectiveness_score("t1")

        score = ranker.final_score(_candidate("t1", score=0.2, confidence=1.0), make_context())

        assert score == pytest.approx(0.2 * (1 + effectiveness / 100) * 1.1)

    def test_stale_usage_gets_no_boost(self, ranker, analytics):
        analytics.track_usage(make_usage("t1", "u1", FIXED_NOW - timedelta(days=8)))

        assert ranker.final_score(_candidate("t1", score=0.2, confidence=1.0), make_context()) == pytest.approx(0.2)

    def test_diversity_penalty_hook(self, analytics, clock):
        ranker = HybridRanker(
            FeatureCatalog(demo_catalog()),
            analytics,
            diversity_penalty=lambda candidate, context: 0.5,
            clock=clock
        )
        assert ranker.final_score(_candidate("t1", score=0.4, confidence=1.0), make_context()) == pytest.approx(0.2)

    def test_scores_are_clamped(self, ranker, analytics):
        analytics.record_performance(make_performance("t1", completion=1.0, satisfaction=10))
        assert ranker.final_score(_candidate("t1", score=1.0, confidence=1.0), make_context()) == 1.0


class TestExplanations:
    def test_primary_reason_is_highest_weight(self, ranker):
        candidate = _candidate("t1", reasons=[_reason("low", 0.1), _reason("high", 0.9)])
        assert ranker.explain(candidate).primary_reason == "high"

    def test_fallback_primary_reason(self, ranker):
        assert ranker.explain(_candidate("t1")).primary_reason == "Popular choice among users"

    def test_supporting_factors(self, ranker, analytics):
        analytics.record_performance(make_performance("t1", completion=1.0, satisfaction=9))
        analytics.record_performance(make_performance("t1", completion=1.0, satisfaction=9))
        candidate = _candidate("t1", confidence=0.9, factors=[
            ContextFactor(factor=ContextFactorType.TIME_OF_SEASON, value="inseason", influence=0.9),
            ContextFactor(factor=ContextFactorType.PLAYER_LEVEL, value="beginner", influence=0.4),
        ])

        explanation = ranker.explain(candidate)
        effectiveness = analytics.get_template_analytics("t1").effectiveness_score

        assert explanation.confidence_level == ConfidenceLevel.HIGH
        assert explanation.supporting_factors == [
            "Good fit for time of season",
            f"High effectiveness score ({effectiveness}%)",
            "Highly rated by users (9/10)",
        ]

    def test_confidence_levels(self, ranker):
        assert ranker.explain(_candidate("t1", confidence=0.5)).confidence_level == ConfidenceLevel.MEDIUM
        assert ranker.explain(_candidate("t1", confidence=0.4)).confidence_level == ConfidenceLevel.LOW


class TestBuildResult:
    def test_result_shape_and_metadata(self, ranker, clock):
        candidates = [_candidate(tid, score=0.5, confidence=0.6) for tid in ("t1", "t2", "t3", "t4")]
        context = make_context(
            season=Season.PLAYOFFS,
            available_time=30,
            equipment=["pucks", "cones", "bands", "bike"],
            restrictions=["knee"]
        )

        result = ranker.build_result(
            [(CandidateSource.POPULARITY, candidates)],
            context,
            limit=2,
            algorithm=AlgorithmTag.HYBRID
        )

        assert len(result.recommendations) == 2
        assert len(result.alternative_options) == 2
        assert len(result.explanations) == 2
        assert result.metadata.algorithm == AlgorithmTag.HYBRID
        assert result.metadata.confidence == 0.6
        assert result.metadata.generated_at == clock()
        assert result.metadata.context_factors == [
            "Season: playoffs",
            "Available time: 30 minutes",
            "Player level: intermediate",
            "Equipment: pucks, cones, bands",
            "Restrictions: 1 active",
        ]
        assert result.metadata.filtering_criteria == [
            "Duration ≤ 30 minutes",
            "Medical restrictions applied",
            "Equipment availability filtered",
            "Difficulty level: intermediate",
        ]

    def test_sorted_descending_and_alternatives_optional(self, ranker):
        candidates = [
            _candidate("t1", score=0.2, confidence=1.0),
            _candidate("t2", score=0.9, confidence=1.0),
            _candidate("t3", score=0.5, confidence=1.0),
        ]

        result = ranker.build_result(
            [(CandidateSource.COLLABORATIVE, candidates)],
            make_context(),
            limit=10,
            include_alternatives=False
        )

        scores = [c.score for c in result.recommendations]
        assert scores == sorted(scores, reverse=True)
        assert [c.template_id for c in result.recommendations] == ["t2", "t3", "t1"]
        assert result.alternative_options == []

    def test_invalid_limit(self, ranker):
        with pytest.raises(ValueError):
            ranker.build_result([], make_context(), limit=0)

    def test_empty_result_confidence_is_zero(self, ranker):
        result = ranker.build_result([], make_context())
        assert result.recommendations == []
        assert result.metadata.confidence == 0.0
