import pytest

from models import InteractionKind, SimilarityFactorName
from services.catalog import FeatureCatalog, UnknownTemplateError
from services.core.interaction_store import InteractionStore
from services.core.similarity_engine import (
    SimilarityEngine,
    duration_closeness,
    jaccard,
    keyword_cosine,
    pearson,
)
from tests.factories import demo_catalog


def test_factor_helpers():
    assert jaccard([], []) == 0.0
    assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)
    assert duration_closeness(0, 0) == 0.0
    assert duration_closeness(30, 60) == pytest.approx(0.5)
    assert keyword_cosine([], ["a"]) == 0.0
    assert keyword_cosine(["a", "b"], ["a", "b"]) == pytest.approx(1.0)
    assert pearson([1, 1, 1], [1, 2, 3]) == 0.0
    assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)


class TestTemplateSimilarity:
    @pytest.fixture
    def engine(self):
        catalog = FeatureCatalog(demo_catalog())
        engine = SimilarityEngine(catalog, InteractionStore())
        engine.rebuild_template_similarities()
        return engine

    def test_matrix_is_symmetric_and_bounded(self, engine):
        ids = engine.catalog.ids()
        for a in ids:
            for b in ids:
                score = engine.template_similarity(a, b)
                assert 0.0 <= score <= 1.0
                assert score == engine.template_similarity(b, a)

    def test_matrix_matches_factor_breakdown(self, engine):
        edge = engine.explain("t1", "t2")

        assert edge.score == pytest.approx(0.95)
        assert engine.template_similarity("t1", "t2") == pytest.approx(edge.score)
        factors = {factor.factor: factor.score for factor in edge.factors}
        assert factors[SimilarityFactorName.KEYWORDS] == pytest.approx(2 / 3)
        assert factors[SimilarityFactorName.EQUIPMENT] == 1.0

    def test_similar_templates_excludes_self_and_respects_floor(self, engine):
        results = engine.similar_templates("t1", min_similarity=0.3)

        assert results[0][0] == "t2"
        assert all(template_id != "t1" for template_id, _ in results)
        assert all(score >= 0.3 for _, score in results)

    def test_unknown_template(self, engine):
        assert engine.template_similarity("t1", "missing") == 0.0
        assert engine.similar_templates("missing") == []
        with pytest.raises(UnknownTemplateError):
            engine.explain("t1", "missing")

    def test_export_restore_requires_matching_catalog(self, engine):
        exported = engine.export_template_matrix()

        other = SimilarityEngine(engine.catalog, InteractionStore())
        assert other.restore_template_matrix(exported)
        assert other.template_similarity("t1", "t2") == pytest.approx(engine.template_similarity("t1", "t2"))

        smaller = SimilarityEngine(FeatureCatalog(demo_catalog()[:2]), InteractionStore())
        assert not smaller.restore_template_matrix(exported)


class TestUserSimilarity:
    def _rate(self, store, user_id, ratings):
        for template_id, rating in ratings.items():
            store.record_interaction(user_id, template_id, InteractionKind.RATED, rating)

    def test_identical_ratings_give_full_similarity(self):
        store = InteractionStore()
        engine = SimilarityEngine(FeatureCatalog(demo_catalog()), store)

        self._rate(store, "u1", {"t1": 9, "t2": 5, "t3": 2})
        self._rate(store, "u2", {"t1": 9, "t2": 5, "t3": 2})
        engine.rebuild_user_similarities()

        assert engine.user_similarity("u1", "u2") == pytest.approx(1.0)
        assert engine.user_similarity("u2", "u1") == pytest.approx(1.0)

    def test_incremental_update_matches_full_rebuild(self):
        store = InteractionStore()
        engine = SimilarityEngine(FeatureCatalog(demo_catalog()), store)

        self._rate(store, "u1", {"t1": 9, "t2": 5, "t3": 2})
        self._rate(store, "u2", {"t1": 2, "t2": 5, "t3": 9})
        self._rate(store, "u3", {"t1": 8, "t2": 6, "t3": 1})
        for user_id in ("u1", "u2", "u3"):
            engine.update_user(user_id)
        incremental = engine.export_user_similarities()

        engine.rebuild_user_similarities()
        full = engine.export_user_similarities()

        assert incremental.keys() == full.keys()
        for user_id, row in full.items():
            assert incremental[user_id] == pytest.approx(row)

    def test_neighbors_are_positive_only_by_default(self):
        store = InteractionStore()
        engine = SimilarityEngine(FeatureCatalog(demo_catalog()), store)

        self._rate(store, "u1", {"t1": 9, "t2": 5, "t3": 1})
        self._rate(store, "u2", {"t1": 1, "t2": 5, "t3": 9})
        self._rate(store, "u3", {"t1": 9, "t2": 5, "t3": 1})
        engine.rebuild_user_similarities()

        assert engine.user_similarity("u1", "u2") == pytest.approx(-1.0)
        assert [uid for uid, _ in engine.top_similar_users("u1")] == ["u3"]
        assert len(engine.top_similar_users("u1", positive_only=False)) == 2

    def test_single_common_template_is_not_stored(self):
        store = InteractionStore()
        engine = SimilarityEngine(FeatureCatalog(demo_catalog()), store)

        self._rate(store, "u1", {"t1": 9, "t2": 3})
        self._rate(store, "u2", {"t1": 9, "t3": 3})
        engine.rebuild_user_similarities()

        assert engine.user_similarity("u1", "u2") == 0.0
        assert engine.stats()["user_edges"] == 0

    def test_weak_correlation_is_not_stored(self):
        store = InteractionStore()
        engine = SimilarityEngine(FeatureCatalog(demo_catalog()), store)

        # r is about -0.08, inside the storage threshold
        self._rate(store, "u1", {"t1": 1, "t2": 2, "t3": 3, "t4": 4})
        self._rate(store, "u2", {"t1": 6, "t2": 2, "t3": 9, "t4": 3})

        engine.rebuild_user_similarities()
        assert engine.user_similarity("u1", "u2") == 0.0
        assert engine.stats()["user_edges"] == 0

        engine.update_user("u1")
        engine.update_user("u2")
        assert engine.user_similarity("u1", "u2") == 0.0
        assert engine.stats()["user_edges"] == 0
