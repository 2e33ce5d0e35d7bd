"""
Template-template and user-user similarity.

Template similarity is a weighted blend of six feature factors computed for the
whole catalog at once with numpy. User similarity is Pearson correlation over
co-scored templates, kept sparse (only significant pairs are stored).
"""

import math
import threading
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from models import (
    SimilarityEdge,
    SimilarityFactor,
    SimilarityFactorName,
    TemplateFeatureVector,
    TemplateSimilarityMatrix,
)
from services.catalog.feature_catalog import FeatureCatalog, UnknownTemplateError
from services.core.interaction_store import InteractionStore
from utils.logger import setup_logger
from utils.timing import StageTimer

logger = setup_logger(__name__)

FACTOR_WEIGHTS: Dict[SimilarityFactorName, float] = {
    SimilarityFactorName.TYPE: 0.25,
    SimilarityFactorName.DIFFICULTY: 0.15,
    SimilarityFactorName.EQUIPMENT: 0.20,
    SimilarityFactorName.CATEGORIES: 0.15,
    SimilarityFactorName.DURATION: 0.10,
    SimilarityFactorName.KEYWORDS: 0.15,
}

MIN_COMMON_TEMPLATES = 2


def jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def duration_closeness(d1: float, d2: float) -> float:
    longest = max(d1, d2)
    if longest <= 0:
        return 0.0
    return 1.0 - abs(d1 - d2) / longest


def keyword_cosine(k1: Sequence[str], k2: Sequence[str]) -> float:
    """Cosine of length-normalized term frequencies (no IDF weighting)."""
    if not k1 or not k2:
        return 0.0

    tf1 = {term: count / len(k1) for term, count in Counter(k1).items()}
    tf2 = {term: count / len(k2) for term, count in Counter(k2).items()}

    dot = sum(weight * tf2.get(term, 0.0) for term, weight in tf1.items())
    norm = math.sqrt(sum(w * w for w in tf1.values())) * math.sqrt(sum(w * w for w in tf2.values()))
    return dot / norm if norm else 0.0


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if x.size == 0:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum()))
    if denominator == 0:
        return 0.0

    return float(np.clip(float((dx * dy).sum()) / denominator, -1.0, 1.0))


def _factor_scores(a: TemplateFeatureVector, b: TemplateFeatureVector) -> Dict[SimilarityFactorName, float]:
    return {
        SimilarityFactorName.TYPE: 1.0 if a.type == b.type else 0.0,
        SimilarityFactorName.DIFFICULTY: 1.0 if a.difficulty == b.difficulty else 0.0,
        SimilarityFactorName.EQUIPMENT: jaccard(a.equipment, b.equipment),
        SimilarityFactorName.CATEGORIES: jaccard(a.categories, b.categories),
        SimilarityFactorName.DURATION: duration_closeness(a.duration, b.duration),
        SimilarityFactorName.KEYWORDS: keyword_cosine(a.keywords, b.keywords),
    }


def _membership_matrix(groups: List[Sequence[str]], counts: bool = False) -> np.ndarray:
    vocabulary: Dict[str, int] = {}
    for group in groups:
        for token in group:
            vocabulary.setdefault(token, len(vocabulary))

    matrix = np.zeros((len(groups), len(vocabulary)))
    for row, group in enumerate(groups):
        for token in group:
            if counts:
                matrix[row, vocabulary[token]] += 1.0
            else:
                matrix[row, vocabulary[token]] = 1.0
    return matrix


def _jaccard_matrix(groups: List[Sequence[str]]) -> np.ndarray:
    membership = _membership_matrix(groups)
    intersection = membership @ membership.T
    sizes = membership.sum(axis=1)
    union = sizes[:, None] + sizes[None, :] - intersection

    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(union > 0, intersection / union, 0.0)


def _keyword_cosine_matrix(bags: List[Sequence[str]]) -> np.ndarray:
    counts = _membership_matrix(bags, counts=True)
    lengths = counts.sum(axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    tf = counts / lengths

    norms = np.linalg.norm(tf, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    normalized = tf / norms
    return normalized @ normalized.T


def _equality_matrix(values: List[object]) -> np.ndarray:
    lookup: Dict[object, int] = {}
    codes = np.array([lookup.setdefault(value, len(lookup)) for value in values])
    return (codes[:, None] == codes[None, :]).astype(float)


class SimilarityEngine:
    def __init__(
        self,
        catalog: FeatureCatalog,
        interactions: InteractionStore,
        user_similarity_threshold: float = 0.1
    ):
        self.catalog = catalog
        self.interactions = interactions
        self.user_similarity_threshold = user_similarity_threshold

        # single writer for both matrices; readers see whole swapped objects
        self._lock = threading.RLock()

        self.matrix: Optional[np.ndarray] = None
        self.template_id_to_idx: Dict[str, int] = {}
        self.idx_to_template_id: Dict[int, str] = {}
        self._user_similarities: Dict[str, Dict[str, float]] = {}

    # template side

    def rebuild_template_similarities(self) -> int:
        timer = StageTimer("template_similarity_rebuild")

        with self._lock:
            features = self.catalog.values()
            n = len(features)

            with timer.stage("factors"):
                if n == 0:
                    matrix = np.zeros((0, 0))
                else:
                    factors = {
                        SimilarityFactorName.TYPE: _equality_matrix([f.type for f in features]),
                        SimilarityFactorName.DIFFICULTY: _equality_matrix([f.difficulty for f in features]),
                        SimilarityFactorName.EQUIPMENT: _jaccard_matrix([f.equipment for f in features]),
                        SimilarityFactorName.CATEGORIES: _jaccard_matrix([f.categories for f in features]),
                        SimilarityFactorName.DURATION: self._duration_matrix(features),
                        SimilarityFactorName.KEYWORDS: _keyword_cosine_matrix([f.keywords for f in features]),
                    }
                    matrix = sum(FACTOR_WEIGHTS[name] * values for name, values in factors.items())
                    # exact symmetry regardless of BLAS summation order
                    matrix = np.clip((matrix + matrix.T) / 2.0, 0.0, 1.0)

            self.matrix = matrix
            self.template_id_to_idx = {f.template_id: idx for idx, f in enumerate(features)}
            self.idx_to_template_id = {idx: f.template_id for idx, f in enumerate(features)}

        timer.log_summary(n_templates=n, memory_mb=round(matrix.nbytes / (1024 * 1024), 2))
        return n

    @staticmethod
    def _duration_matrix(features: List[TemplateFeatureVector]) -> np.ndarray:
        durations = np.array([f.duration for f in features], dtype=float)
        longest = np.maximum(durations[:, None], durations[None, :])
        difference = np.abs(durations[:, None] - durations[None, :])

        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(longest > 0, 1.0 - difference / longest, 0.0)

    def is_built(self) -> bool:
        return self.matrix is not None

    def template_similarity(self, template_a: str, template_b: str) -> float:
        if self.matrix is None:
            return 0.0

        idx_a = self.template_id_to_idx.get(template_a)
        idx_b = self.template_id_to_idx.get(template_b)
        if idx_a is None or idx_b is None:
            return 0.0

        return float(self.matrix[idx_a, idx_b])

    def similar_templates(
        self,
        template_id: str,
        min_similarity: float = 0.0,
        top_k: Optional[int] = None
    ) -> List[Tuple[str, float]]:
        matrix = self.matrix
        idx = self.template_id_to_idx.get(template_id)
        if matrix is None or idx is None:
            return []

        row = matrix[idx]
        order = np.argsort(-row, kind="stable")

        results = []
        for other in order:
            other = int(other)
            if other == idx:
                continue
            score = float(row[other])
            if score < min_similarity:
                break
            results.append((self.idx_to_template_id[other], score))
            if top_k is not None and len(results) >= top_k:
                break

        return results

    def explain(self, template_a: str, template_b: str) -> SimilarityEdge:
        features_a = self.catalog.get(template_a)
        if features_a is None:
            raise UnknownTemplateError(template_a)
        features_b = self.catalog.get(template_b)
        if features_b is None:
            raise UnknownTemplateError(template_b)

        scores = _factor_scores(features_a, features_b)
        total = sum(FACTOR_WEIGHTS[name] * score for name, score in scores.items())

        return SimilarityEdge(
            template_a=template_a,
            template_b=template_b,
            score=min(1.0, max(0.0, total)),
            factors=[
                SimilarityFactor(factor=name, score=min(1.0, max(0.0, score)), weight=FACTOR_WEIGHTS[name])
                for name, score in scores.items()
            ]
        )

    def export_template_matrix(self) -> Optional[TemplateSimilarityMatrix]:
        with self._lock:
            if self.matrix is None:
                return None
            ids = [self.idx_to_template_id[idx] for idx in range(len(self.idx_to_template_id))]
            return TemplateSimilarityMatrix(
                template_ids=ids,
                scores=np.round(self.matrix, 6).tolist()
            )

    def restore_template_matrix(self, data: TemplateSimilarityMatrix) -> bool:
        """Adopt a persisted matrix if it covers exactly the current catalog."""
        if set(data.template_ids) != set(self.catalog.ids()):
            logger.info(
                "Persisted template matrix does not match catalog, rebuild required",
                extra={"persisted": len(data.template_ids), "catalog": len(self.catalog)}
            )
            return False

        matrix = np.asarray(data.scores, dtype=float)
        n = len(data.template_ids)
        if matrix.shape != (n, n):
            logger.warning(
                "Persisted template matrix has wrong shape",
                extra={"shape": list(matrix.shape), "expected": n}
            )
            return False

        with self._lock:
            self.matrix = matrix
            self.template_id_to_idx = {tid: idx for idx, tid in enumerate(data.template_ids)}
            self.idx_to_template_id = {idx: tid for idx, tid in enumerate(data.template_ids)}

        return True

    # user side

    def _user_row(self, user_id: str, all_scores: Dict[str, Dict[str, float]]) -> Dict[str, float]:
        mine = all_scores.get(user_id, {})
        row: Dict[str, float] = {}
        if len(mine) < MIN_COMMON_TEMPLATES:
            return row

        for other_id, theirs in all_scores.items():
            if other_id == user_id:
                continue
            score = self._pair_similarity(mine, theirs)
            if abs(score) > self.user_similarity_threshold:
                row[other_id] = score
        return row

    @staticmethod
    def _pair_similarity(mine: Dict[str, float], theirs: Dict[str, float]) -> float:
        common = [template_id for template_id in mine if template_id in theirs]
        if len(common) < MIN_COMMON_TEMPLATES:
            return 0.0
        return pearson([mine[t] for t in common], [theirs[t] for t in common])

    def rebuild_user_similarities(self) -> int:
        timer = StageTimer("user_similarity_rebuild")
        all_scores = self.interactions.snapshot()
        user_ids = list(all_scores.keys())

        similarities: Dict[str, Dict[str, float]] = {}
        with timer.stage("pearson"):
            for i, user_a in enumerate(user_ids):
                for user_b in user_ids[i + 1:]:
                    score = self._pair_similarity(all_scores[user_a], all_scores[user_b])
                    if abs(score) > self.user_similarity_threshold:
                        similarities.setdefault(user_a, {})[user_b] = score
                        similarities.setdefault(user_b, {})[user_a] = score

        with self._lock:
            self._user_similarities = similarities

        edges = sum(len(row) for row in similarities.values()) // 2
        timer.log_summary(users=len(user_ids), edges=edges)
        return edges

    def update_user(self, user_id: str) -> int:
        """Recompute one user's row (and its mirror entries) after an interaction."""
        all_scores = self.interactions.snapshot()
        row = self._user_row(user_id, all_scores)

        with self._lock:
            similarities = {
                other: {uid: score for uid, score in scores.items() if uid != user_id}
                for other, scores in self._user_similarities.items()
                if other != user_id
            }
            for other_id, score in row.items():
                similarities.setdefault(other_id, {})[user_id] = score
            if row:
                similarities[user_id] = dict(row)
            self._user_similarities = {uid: scores for uid, scores in similarities.items() if scores}

        return len(row)

    def user_similarity(self, user_a: str, user_b: str) -> float:
        return self._user_similarities.get(user_a, {}).get(user_b, 0.0)

    def top_similar_users(
        self,
        user_id: str,
        k: int = 10,
        positive_only: bool = True
    ) -> List[Tuple[str, float]]:
        row = self._user_similarities.get(user_id, {})
        ranked = sorted(row.items(), key=lambda item: item[1], reverse=True)
        if positive_only:
            ranked = [(uid, score) for uid, score in ranked if score > 0]
        return ranked[:k]

    def export_user_similarities(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {uid: dict(row) for uid, row in self._user_similarities.items()}

    def restore_user_similarities(self, data: Dict[str, Dict[str, float]]) -> None:
        with self._lock:
            self._user_similarities = {uid: dict(row) for uid, row in data.items() if row}

    def stats(self) -> Dict[str, int]:
        return {
            "templates_indexed": len(self.template_id_to_idx),
            "user_edges": sum(len(row) for row in self._user_similarities.values()) // 2,
        }
