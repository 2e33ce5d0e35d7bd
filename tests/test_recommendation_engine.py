from datetime import timedelta

import pytest

from data.seed import demo_templates, seed_engine
from models import AlgorithmTag, InteractionKind, ReasonType, Season
from services.catalog import UnknownTemplateError
from services.core import RecommendationEngine
from services.persistence import InMemoryGateway
from tests.factories import FIXED_NOW, FakeClock, demo_catalog, make_context, make_performance, make_usage


@pytest.fixture
def engine():
    engine = RecommendationEngine(clock=FakeClock())
    engine.load_catalog(demo_catalog())
    return engine


def test_cold_start_returns_popularity_results(engine):
    result = engine.recommend(make_context(user_id="newcomer"))

    assert result.recommendations
    assert result.metadata.algorithm == AlgorithmTag.POPULARITY
    for candidate in result.recommendations:
        assert 0.0 <= candidate.score <= 1.0
        assert 0.0 <= candidate.confidence <= 1.0
        assert candidate.reasons
        assert all(reason.type == ReasonType.SUCCESS_RATE for reason in candidate.reasons)


def test_hybrid_results_respect_hard_filters(engine):
    for user_id, ratings in {"u1": {"t1": 9, "t2": 6, "t3": 2}, "u2": {"t1": 8, "t2": 6, "t3": 1, "t4": 9}}.items():
        for template_id, rating in ratings.items():
            engine.record_interaction(user_id, template_id, InteractionKind.RATED, rating)

    context = make_context(user_id="u1", equipment=["cones"], available_time=30)
    result = engine.recommend(context, limit=5)

    assert result.metadata.algorithm == AlgorithmTag.HYBRID
    ids = {candidate.template_id for candidate in result.recommendations + result.alternative_options}
    assert ids
    assert "t1" not in ids and "t2" not in ids and "t5" not in ids
    assert "t4" in ids


def test_limit_validation(engine):
    with pytest.raises(ValueError):
        engine.recommend(make_context(), limit=0)


def test_interaction_updates_user_similarity_incrementally(engine):
    for template_id, rating in {"t1": 9, "t2": 5, "t3": 2}.items():
        engine.record_interaction("u1", template_id, InteractionKind.RATED, rating)
        engine.record_interaction("u2", template_id, InteractionKind.RATED, rating)

    assert engine.similarity.user_similarity("u1", "u2") == pytest.approx(1.0)


def test_record_interaction_requires_ids(engine):
    with pytest.raises(ValueError):
        engine.record_interaction("", "t1", InteractionKind.VIEWED)


def test_analytics_passthrough_and_unknown_template(engine):
    engine.track_usage(make_usage("t1", "u1", FIXED_NOW - timedelta(days=1)))
    engine.record_performance(make_performance("t1"))

    assert engine.get_analytics("t1").total_usage == 1
    assert engine.get_rankings()[0].template_id == "t1"
    with pytest.raises(UnknownTemplateError):
        engine.get_analytics("missing")
    with pytest.raises(UnknownTemplateError):
        engine.export_analytics("missing")


def test_catalog_refresh_rebuilds_template_matrix(engine):
    assert engine.similarity.is_built()
    assert engine.similarity.template_similarity("t1", "t2") > 0.9

    engine.load_catalog(demo_catalog()[2:])

    assert engine.similarity.template_similarity("t1", "t2") == 0.0
    assert engine.stats()["catalog_size"] == 3


def test_warm_start_round_trip():
    gateway = InMemoryGateway()
    clock = FakeClock()

    first = RecommendationEngine(gateway=gateway, clock=clock)
    first.load_catalog(demo_catalog())
    first.record_interaction("u1", "t1", InteractionKind.RATED, 9)
    first.record_interaction("u1", "t2", InteractionKind.RATED, 4)
    first.record_interaction("u2", "t1", InteractionKind.RATED, 8)
    first.record_interaction("u2", "t2", InteractionKind.RATED, 3)
    first.track_usage(make_usage("t1", "u1"))
    first.record_performance(make_performance("t1"))
    first.flush_persistence(timeout=5)
    first.shutdown()

    second = RecommendationEngine(gateway=gateway, clock=clock)
    assert second.warm_start()

    assert second.interactions.snapshot() == first.interactions.snapshot()
    assert second.catalog.ids() == first.catalog.ids()
    assert second.similarity.template_similarity("t1", "t2") == pytest.approx(first.similarity.template_similarity("t1", "t2"))
    assert second.similarity.user_similarity("u1", "u2") == pytest.approx(first.similarity.user_similarity("u1", "u2"))
    assert second.analytics.get_template_analytics("t1").total_usage == 1
    second.shutdown()


def test_warm_start_without_snapshot_is_cold():
    engine = RecommendationEngine(gateway=InMemoryGateway())
    assert not engine.warm_start()
    engine.shutdown()


def test_seeded_demo_engine_recommends():
    engine = RecommendationEngine()
    summary = seed_engine(engine)

    assert summary["templates"] == len(demo_templates())
    result = engine.recommend(make_context(
        user_id="player-1",
        season=Season.OFFSEASON,
        available_time=60,
        equipment=["barbell", "plyo box", "dumbbells", "bike", "cones", "pucks", "kettlebell"]
    ))

    assert result.metadata.algorithm == AlgorithmTag.HYBRID
    assert result.recommendations
