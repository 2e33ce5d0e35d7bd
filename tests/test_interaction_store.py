import pytest

from models import InteractionKind
from services.core.interaction_store import InteractionStore, apply_interaction


def test_behavioral_kinds_only_raise_to_floor():
    assert apply_interaction(0.0, InteractionKind.VIEWED) == 0.1
    assert apply_interaction(0.0, InteractionKind.STARTED) == 0.3
    assert apply_interaction(0.0, InteractionKind.COMPLETED) == 0.7
    assert apply_interaction(0.9, InteractionKind.COMPLETED) == 0.9
    assert apply_interaction(0.5, InteractionKind.VIEWED) == 0.5


def test_skip_caps_score():
    assert apply_interaction(0.8, InteractionKind.SKIPPED) == -0.2
    assert apply_interaction(-0.5, InteractionKind.SKIPPED) == -0.5


def test_rating_overwrites_and_missing_rating_keeps_score():
    assert apply_interaction(0.7, InteractionKind.RATED, 3) == pytest.approx(0.3)
    assert apply_interaction(0.7, InteractionKind.RATED, None) == 0.7
    assert apply_interaction(0.7, InteractionKind.RATED, 0) == 0.7


def test_store_latest_write_wins_per_pair():
    store = InteractionStore()

    assert store.record_interaction("u1", "t1", InteractionKind.VIEWED) == 0.1
    assert store.record_interaction("u1", "t1", InteractionKind.COMPLETED) == 0.7
    assert store.record_interaction("u1", "t1", InteractionKind.RATED, 4) == pytest.approx(0.4)

    assert store.get_score("u1", "t1") == pytest.approx(0.4)
    assert store.get_score("u1", "t2") is None
    assert len(store) == 1


def test_history_and_copies():
    store = InteractionStore()
    assert not store.has_history("u1")

    store.record_interaction("u1", "t1", "started")
    assert store.has_history("u1")
    assert store.users() == ["u1"]

    scores = store.get_user_scores("u1")
    scores["t1"] = 99
    assert store.get_score("u1", "t1") == 0.3


def test_snapshot_restore():
    store = InteractionStore()
    store.record_interaction("u1", "t1", InteractionKind.RATED, 8)
    store.record_interaction("u2", "t1", InteractionKind.SKIPPED)

    restored = InteractionStore()
    restored.restore(store.snapshot())

    assert restored.snapshot() == store.snapshot()
