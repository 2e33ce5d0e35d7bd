"""
Per-(user, template) interaction scores.

Scores live roughly in [-0.2, 1.0]. Behavioral kinds only move a score in one
direction (viewed/started/completed raise it to a floor, skipped caps it); a
rating overwrites whatever was there.
"""

import threading
from typing import Dict, List, Optional

from models import InteractionKind
from utils.logger import setup_logger

logger = setup_logger(__name__)

INTERACTION_FLOORS = {
    InteractionKind.VIEWED: 0.1,
    InteractionKind.STARTED: 0.3,
    InteractionKind.COMPLETED: 0.7,
}

SKIP_CEILING = -0.2


def apply_interaction(
    current: float,
    kind: InteractionKind,
    rating: Optional[float] = None
) -> float:
    if kind in INTERACTION_FLOORS:
        return max(current, INTERACTION_FLOORS[kind])
    if kind == InteractionKind.SKIPPED:
        return min(current, SKIP_CEILING)
    if kind == InteractionKind.RATED:
        # a missing (or zero) rating leaves the score untouched
        return rating / 10.0 if rating else current
    raise ValueError(f"unsupported interaction kind: {kind}")


class InteractionStore:
    def __init__(self):
        self._lock = threading.RLock()
        self._scores: Dict[str, Dict[str, float]] = {}

    def record_interaction(
        self,
        user_id: str,
        template_id: str,
        kind: InteractionKind,
        rating: Optional[float] = None
    ) -> float:
        kind = InteractionKind(kind)

        with self._lock:
            user_scores = self._scores.setdefault(user_id, {})
            previous = user_scores.get(template_id, 0.0)
            score = apply_interaction(previous, kind, rating)
            user_scores[template_id] = score

        logger.debug(
            "Interaction recorded",
            extra={
                "user_id": user_id,
                "template_id": template_id,
                "kind": kind.value,
                "previous_score": previous,
                "score": score
            }
        )
        return score

    def get_score(self, user_id: str, template_id: str) -> Optional[float]:
        return self._scores.get(user_id, {}).get(template_id)

    def get_user_scores(self, user_id: str) -> Dict[str, float]:
        with self._lock:
            return dict(self._scores.get(user_id, {}))

    def has_history(self, user_id: str) -> bool:
        return bool(self._scores.get(user_id))

    def users(self) -> List[str]:
        return list(self._scores.keys())

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {user_id: dict(scores) for user_id, scores in self._scores.items()}

    def restore(self, data: Dict[str, Dict[str, float]]) -> None:
        with self._lock:
            self._scores = {user_id: dict(scores) for user_id, scores in data.items()}

        logger.info(
            "Interaction matrix restored",
            extra={"users": len(self._scores)}
        )

    def __len__(self) -> int:
        return sum(len(scores) for scores in self._scores.values())
