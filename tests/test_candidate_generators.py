import pytest

from models import (
    CandidateSource,
    ContextFactorType,
    Difficulty,
    InteractionKind,
    ReasonType,
    Season,
    WorkoutType,
)
from services.analytics import AnalyticsEngine
from services.candidates import (
    CollaborativeGenerator,
    ContentBasedGenerator,
    ContextualGenerator,
    PopularityGenerator,
)
from services.candidates.context_scoring import equipment_match, level_match, seasonal_influence
from services.catalog import FeatureCatalog
from services.core.interaction_store import InteractionStore
from services.core.similarity_engine import SimilarityEngine
from tests.factories import FakeClock, demo_catalog, make_context, make_performance


def test_context_scoring_helpers():
    assert seasonal_influence(WorkoutType.AGILITY, Season.INSEASON) == 0.9
    assert seasonal_influence(WorkoutType.STRENGTH, Season.OFFSEASON) == 1.0
    assert level_match(Difficulty.INTERMEDIATE, Difficulty.INTERMEDIATE) == 1.0
    assert level_match(Difficulty.BEGINNER, Difficulty.ELITE) == pytest.approx(0.1)
    assert equipment_match([], ["cones"]) == 1.0
    assert equipment_match(["pucks", "bike"], ["pucks"]) == 0.5


class TestGenerators:
    @pytest.fixture
    def setup(self):
        catalog = FeatureCatalog(demo_catalog())
        store = InteractionStore()
        similarity = SimilarityEngine(catalog, store)
        similarity.rebuild_template_similarities()
        analytics = AnalyticsEngine(clock=FakeClock())

        popularity = PopularityGenerator(catalog, store, analytics)
        return {
            "catalog": catalog,
            "store": store,
            "similarity": similarity,
            "analytics": analytics,
            "popularity": popularity,
            "collaborative": CollaborativeGenerator(catalog, store, similarity, fallback=popularity),
            "content": ContentBasedGenerator(catalog, store, similarity, fallback=popularity),
            "contextual": ContextualGenerator(catalog, store, fallback=popularity),
        }

    def _rate(self, setup, user_id, ratings):
        for template_id, rating in ratings.items():
            setup["store"].record_interaction(user_id, template_id, InteractionKind.RATED, rating)
        setup["similarity"].update_user(user_id)

    def test_popularity_ranks_by_effectiveness(self, setup):
        setup["analytics"].record_performance(make_performance("t3", completion=0.9))

        candidates = setup["popularity"].generate(make_context(), limit=3)

        assert len(candidates) == 3
        assert candidates[0].template_id == "t3"
        assert candidates[0].confidence == 0.7
        assert candidates[0].reasons[0].type == ReasonType.SUCCESS_RATE
        assert candidates[0].score == pytest.approx(setup["analytics"].calculate_effectiveness_score("t3") / 100)

    def test_popularity_respects_catalog_cap(self, setup):
        capped = PopularityGenerator(setup["catalog"], setup["store"], setup["analytics"], max_catalog_size=2)
        ids = {candidate.template_id for candidate in capped.generate(make_context(), limit=10)}
        assert ids == {"t1", "t2"}

    def test_cold_start_falls_back_to_popularity(self, setup):
        context = make_context(user_id="newcomer")

        for name in ("collaborative", "content", "contextual"):
            candidates = setup[name].generate(context, limit=5)
            assert candidates
            assert all(c.reasons[0].type == ReasonType.SUCCESS_RATE for c in candidates)

    def test_collaborative_recommends_neighbor_favorites(self, setup):
        self._rate(setup, "u2", {"t1": 8, "t2": 5, "t3": 1, "t4": 9, "t5": 3})
        self._rate(setup, "u1", {"t1": 9, "t2": 5, "t3": 2})

        candidates = setup["collaborative"].generate(make_context(user_id="u1"), limit=5)

        assert [c.template_id for c in candidates] == ["t4"]
        reason = candidates[0].reasons[0]
        assert reason.type == ReasonType.SIMILAR_USERS
        assert "(9/10)" in reason.description
        similarity = setup["similarity"].user_similarity("u1", "u2")
        assert candidates[0].score == pytest.approx(0.9 * similarity * 0.40)
        assert candidates[0].confidence == pytest.approx(min(1.0, 0.5 + similarity))

    def test_collaborative_without_neighbors_is_empty(self, setup):
        self._rate(setup, "u1", {"t1": 9})
        assert setup["collaborative"].generate(make_context(user_id="u1"), limit=5) == []
        assert setup["collaborative"].confidence("u1") == 0.5
        assert setup["collaborative"].confidence("nobody") == 0.3

    def test_content_based_expands_liked_templates(self, setup):
        self._rate(setup, "u1", {"t1": 9})

        candidates = setup["content"].generate(make_context(user_id="u1"), limit=5)

        assert candidates[0].template_id == "t2"
        assert candidates[0].score == pytest.approx(0.95 * 0.35)
        assert candidates[0].confidence == pytest.approx(0.8)
        assert candidates[0].reasons[0].type == ReasonType.CONTENT_SIMILARITY
        assert "95% match" in candidates[0].reasons[0].description
        assert all(c.template_id != "t1" for c in candidates)

    def test_content_based_without_liked_templates_falls_back(self, setup):
        self._rate(setup, "u1", {"t1": 2})

        candidates = setup["content"].generate(make_context(user_id="u1"), limit=5)

        assert candidates
        assert all(c.reasons[0].type == ReasonType.SUCCESS_RATE for c in candidates)

    def test_contextual_filters_and_orders_by_season(self, setup):
        self._rate(setup, "u1", {"t1": 9})

        candidates = setup["contextual"].generate(make_context(user_id="u1"), limit=10)
        ids = [c.template_id for c in candidates]

        assert ids[0] == "t4"
        assert ids[1] == "t3"
        assert "t5" not in ids
        assert candidates[0].confidence == 0.6
        assert candidates[0].reasons[0].description == "Optimized for inseason training phase"

        factors = {factor.factor: factor.influence for factor in candidates[0].context_factors}
        assert factors[ContextFactorType.TIME_OF_SEASON] == 0.9
        assert factors[ContextFactorType.PLAYER_LEVEL] == 1.0
        assert factors[ContextFactorType.AVAILABLE_EQUIPMENT] == 1.0

    def test_sources_are_tagged(self, setup):
        assert setup["collaborative"].source == CandidateSource.COLLABORATIVE
        assert setup["content"].source == CandidateSource.CONTENT_BASED
        assert setup["popularity"].source == CandidateSource.POPULARITY
        assert setup["contextual"].source == CandidateSource.CONTEXTUAL


def test_catalog_cap_limits_generator_input():
    catalog = FeatureCatalog(demo_catalog())
    popularity = PopularityGenerator(
        catalog, InteractionStore(), AnalyticsEngine(clock=FakeClock()), max_catalog_size=2
    )

    assert popularity.catalog_window() == ["t1", "t2"]
    candidates = popularity.generate(make_context(user_id="newcomer"), limit=10)
    assert {candidate.template_id for candidate in candidates} == {"t1", "t2"}
