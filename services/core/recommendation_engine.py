"""
Service object wiring catalog, interactions, similarity, analytics, the
candidate generators and the hybrid ranker behind one API.

Built once at startup (FastAPI lifespan, scripts, tests) and passed around
explicitly. All mutation goes through the engine lock so that similarity
rebuilds and interaction updates never interleave.
"""

import threading
import time
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from models import (
    AlgorithmTag,
    CandidateSource,
    EngineSnapshot,
    InteractionKind,
    PerformanceRecord,
    RawTemplate,
    RecommendationContext,
    RecommendationResult,
    SimilarityEdge,
    TemplateAnalyticsSnapshot,
    TemplateFeatureVector,
    TemplateRanking,
    UsageEvent,
    utcnow,
)
from services.analytics.analytics_engine import AnalyticsEngine
from services.candidates import (
    CollaborativeGenerator,
    ContentBasedGenerator,
    ContextualGenerator,
    PopularityGenerator,
)
from services.catalog.feature_catalog import FeatureCatalog, UnknownTemplateError
from services.catalog.feature_extractor import extract_all
from services.core.interaction_store import InteractionStore
from services.core.similarity_engine import SimilarityEngine
from services.persistence.base import PersistenceGateway
from services.persistence.writer import WriteBehindWriter
from services.ranking.hybrid_ranker import DEFAULT_SOURCE_WEIGHTS, HybridRanker
from utils.circuit_breaker import CircuitBreaker
from utils.correlation_id import get_correlation_id
from utils.logger import setup_logger
from utils.prometheus_metrics import PrometheusMetrics, get_prometheus_metrics
from utils.timing import StageTimer

logger = setup_logger(__name__)

CANDIDATE_POOL_MULTIPLIER = 2


class RecommendationEngine:
    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        source_weights: Optional[Dict[CandidateSource, float]] = None,
        neighbor_count: int = 10,
        liked_threshold: float = 0.5,
        content_similarity_floor: float = 0.3,
        user_similarity_threshold: float = 0.1,
        max_catalog_size: int = 2000,
        duration_tolerance: float = 1.2,
        recency_boost: float = 1.1,
        recency_window_days: int = 7,
        default_limit: int = 10,
        alternatives_count: int = 5,
        cache_ttl_minutes: int = 30,
        trend_threshold_percent: float = 5.0,
        persistence_failure_threshold: int = 5,
        persistence_recovery_seconds: float = 60,
        clock: Optional[Callable[[], datetime]] = None,
        metrics: Optional[PrometheusMetrics] = None
    ):
        self.clock = clock or utcnow
        self.metrics = metrics or get_prometheus_metrics()
        self.default_limit = default_limit
        self.alternatives_count = alternatives_count
        weights = dict(source_weights or DEFAULT_SOURCE_WEIGHTS)

        self._lock = threading.RLock()

        self.catalog = FeatureCatalog()
        self.interactions = InteractionStore()
        self.similarity = SimilarityEngine(
            self.catalog,
            self.interactions,
            user_similarity_threshold=user_similarity_threshold
        )
        self.analytics = AnalyticsEngine(
            cache_ttl_minutes=cache_ttl_minutes,
            trend_threshold_percent=trend_threshold_percent,
            clock=self.clock,
            metrics=self.metrics
        )

        self.popularity = PopularityGenerator(
            self.catalog,
            self.interactions,
            self.analytics,
            weight=weights[CandidateSource.POPULARITY],
            max_catalog_size=max_catalog_size
        )
        self.collaborative = CollaborativeGenerator(
            self.catalog,
            self.interactions,
            self.similarity,
            weight=weights[CandidateSource.COLLABORATIVE],
            neighbor_count=neighbor_count,
            liked_threshold=liked_threshold,
            fallback=self.popularity,
            max_catalog_size=max_catalog_size
        )
        self.content_based = ContentBasedGenerator(
            self.catalog,
            self.interactions,
            self.similarity,
            weight=weights[CandidateSource.CONTENT_BASED],
            liked_threshold=liked_threshold,
            similarity_floor=content_similarity_floor,
            fallback=self.popularity,
            max_catalog_size=max_catalog_size
        )
        self.contextual = ContextualGenerator(
            self.catalog,
            self.interactions,
            weight=weights[CandidateSource.CONTEXTUAL],
            duration_tolerance=duration_tolerance,
            fallback=self.popularity,
            max_catalog_size=max_catalog_size
        )
        self.generators = [self.collaborative, self.content_based, self.popularity, self.contextual]

        self.ranker = HybridRanker(
            self.catalog,
            self.analytics,
            source_weights=weights,
            duration_tolerance=duration_tolerance,
            recency_boost=recency_boost,
            recency_window_days=recency_window_days,
            alternatives_count=alternatives_count,
            clock=self.clock
        )

        self.gateway = gateway
        self.writer: Optional[WriteBehindWriter] = None
        if gateway is not None:
            self.writer = WriteBehindWriter(
                gateway,
                breaker=CircuitBreaker(
                    name=f"persistence_{gateway.name}",
                    failure_threshold=persistence_failure_threshold,
                    recovery_timeout_seconds=persistence_recovery_seconds
                ),
                metrics=self.metrics
            )

    @classmethod
    def from_settings(
        cls,
        settings,
        gateway: Optional[PersistenceGateway] = None,
        clock: Optional[Callable[[], datetime]] = None,
        metrics: Optional[PrometheusMetrics] = None
    ) -> "RecommendationEngine":
        return cls(
            gateway=gateway,
            source_weights={
                CandidateSource.COLLABORATIVE: settings.WEIGHT_COLLABORATIVE,
                CandidateSource.CONTENT_BASED: settings.WEIGHT_CONTENT_BASED,
                CandidateSource.POPULARITY: settings.WEIGHT_POPULARITY,
                CandidateSource.CONTEXTUAL: settings.WEIGHT_CONTEXTUAL,
            },
            neighbor_count=settings.NEIGHBOR_COUNT,
            liked_threshold=settings.LIKED_THRESHOLD,
            content_similarity_floor=settings.CONTENT_SIMILARITY_FLOOR,
            user_similarity_threshold=settings.USER_SIMILARITY_THRESHOLD,
            max_catalog_size=settings.MAX_CATALOG_SIZE,
            duration_tolerance=settings.DURATION_TOLERANCE,
            recency_boost=settings.RECENCY_BOOST,
            recency_window_days=settings.RECENCY_WINDOW_DAYS,
            default_limit=settings.DEFAULT_LIMIT,
            alternatives_count=settings.ALTERNATIVES_COUNT,
            cache_ttl_minutes=settings.ANALYTICS_CACHE_TTL_MINUTES,
            trend_threshold_percent=settings.TREND_THRESHOLD_PERCENT,
            persistence_failure_threshold=settings.PERSISTENCE_FAILURE_THRESHOLD,
            persistence_recovery_seconds=settings.PERSISTENCE_RECOVERY_SECONDS,
            clock=clock,
            metrics=metrics
        )

    # catalog

    def load_catalog(self, features: Iterable[TemplateFeatureVector]) -> int:
        with self._lock:
            count = self.catalog.replace(features)
            self.similarity.rebuild_template_similarities()

        self.metrics.set_catalog_size(count)
        logger.info("Catalog loaded", extra={"templates": count, "catalog_version": self.catalog.version})

        self.persist()
        return count

    def load_raw_templates(self, templates: Iterable[RawTemplate]) -> int:
        return self.load_catalog(extract_all(templates))

    # events

    def record_interaction(
        self,
        user_id: str,
        template_id: str,
        kind: InteractionKind,
        rating: Optional[float] = None
    ) -> float:
        if not user_id or not template_id:
            raise ValueError("user_id and template_id are required")

        kind = InteractionKind(kind)

        with self._lock:
            score = self.interactions.record_interaction(user_id, template_id, kind, rating)
            neighbors = self.similarity.update_user(user_id)

        self.metrics.record_interaction(kind.value)
        logger.debug(
            "Interaction recorded",
            extra={
                "user_id": user_id,
                "template_id": template_id,
                "kind": kind.value,
                "score": score,
                "neighbors": neighbors
            }
        )

        self.persist()
        return score

    def track_usage(self, event: UsageEvent) -> None:
        self.analytics.track_usage(event)
        self.persist()

    def record_performance(self, record: PerformanceRecord) -> None:
        self.analytics.record_performance(record)
        self.persist()

    # recommendations

    def recommend(
        self,
        context: RecommendationContext,
        limit: Optional[int] = None,
        include_alternatives: bool = True
    ) -> RecommendationResult:
        limit = self.default_limit if limit is None else limit
        if limit < 1:
            raise ValueError("limit must be at least 1")

        started = time.perf_counter()
        timer = StageTimer("recommend", correlation_id=get_correlation_id())
        pool_size = (limit + self.alternatives_count) * CANDIDATE_POOL_MULTIPLIER

        with self._lock:
            cold_start = not self.interactions.has_history(context.user_id)

            batches = []
            for generator in self.generators:
                with timer.stage(generator.source.value):
                    batches.append((generator.source, generator.generate(context, pool_size)))

            algorithm = AlgorithmTag.POPULARITY if cold_start else AlgorithmTag.HYBRID
            with timer.stage("rank"):
                result = self.ranker.build_result(
                    batches,
                    context,
                    limit=limit,
                    include_alternatives=include_alternatives,
                    algorithm=algorithm
                )

        self.metrics.record_recommendation(algorithm.value, time.perf_counter() - started)
        timer.log_summary(
            user_id=context.user_id,
            algorithm=algorithm.value,
            candidates={source.value: len(candidates) for source, candidates in batches},
            returned=len(result.recommendations),
            alternatives=len(result.alternative_options)
        )

        return result

    # analytics

    def get_analytics(self, template_id: str) -> TemplateAnalyticsSnapshot:
        self._require_known(template_id)
        return self.analytics.get_template_analytics(template_id)

    def get_bulk_analytics(self, template_ids: Iterable[str]) -> Dict[str, TemplateAnalyticsSnapshot]:
        return self.analytics.get_bulk_analytics(template_ids)

    def export_analytics(self, template_id: str) -> str:
        self._require_known(template_id)
        return self.analytics.export_analytics(template_id)

    def get_rankings(self, template_ids: Optional[Iterable[str]] = None) -> List[TemplateRanking]:
        if template_ids is None:
            template_ids = self.catalog.ids()
        return self.analytics.get_template_rankings(template_ids)

    def explain_similarity(self, template_a: str, template_b: str) -> SimilarityEdge:
        return self.similarity.explain(template_a, template_b)

    def _require_known(self, template_id: str) -> None:
        if template_id not in self.catalog and template_id not in self.analytics.tracked_templates():
            raise UnknownTemplateError(template_id)

    # lifecycle

    def rebuild_similarities(self) -> Dict[str, int]:
        with self._lock:
            templates = self.similarity.rebuild_template_similarities()
            user_edges = self.similarity.rebuild_user_similarities()

        self.persist()
        return {"templates": templates, "user_edges": user_edges}

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            usage, performance = self.analytics.export_events()
            return EngineSnapshot(
                saved_at=self.clock(),
                interactions=self.interactions.snapshot(),
                template_similarities=self.similarity.export_template_matrix(),
                user_similarities=self.similarity.export_user_similarities(),
                features=self.catalog.values(),
                usage_events=usage,
                performance_records=performance,
            )

    def warm_start(self) -> bool:
        """Hydrate from the gateway. Returns False (cold engine) when nothing usable is stored."""
        if self.gateway is None:
            return False

        try:
            snapshot = self.gateway.load()
        except Exception as e:
            logger.error(
                "Failed to load persisted state, starting cold",
                extra={"gateway": self.gateway.name, "error": str(e)},
                exc_info=True
            )
            return False

        if snapshot is None:
            logger.info("No persisted state, starting cold", extra={"gateway": self.gateway.name})
            return False

        timer = StageTimer("warm_start")
        with self._lock:
            with timer.stage("catalog"):
                count = self.catalog.replace(snapshot.features)

            with timer.stage("events"):
                self.interactions.restore(snapshot.interactions)
                self.analytics.restore_events(snapshot.usage_events, snapshot.performance_records)

            with timer.stage("template_similarities"):
                restored = (
                    snapshot.template_similarities is not None
                    and self.similarity.restore_template_matrix(snapshot.template_similarities)
                )
                if not restored:
                    self.similarity.rebuild_template_similarities()

            with timer.stage("user_similarities"):
                if snapshot.user_similarities:
                    self.similarity.restore_user_similarities(snapshot.user_similarities)
                else:
                    self.similarity.rebuild_user_similarities()

        self.metrics.set_catalog_size(count)
        timer.log_summary(
            gateway=self.gateway.name,
            templates=count,
            users=len(self.interactions.users()),
            template_matrix_restored=restored,
            saved_at=snapshot.saved_at.isoformat()
        )
        return True

    def persist(self) -> None:
        if self.writer is not None:
            self.writer.schedule(self.snapshot)

    def flush_persistence(self, timeout: Optional[float] = None) -> None:
        if self.writer is not None:
            self.writer.flush(timeout=timeout)

    def shutdown(self) -> None:
        if self.writer is not None:
            self.writer.shutdown()

    def stats(self) -> Dict[str, object]:
        return {
            "catalog_size": len(self.catalog),
            "catalog_version": self.catalog.version,
            "users": len(self.interactions.users()),
            "interactions": len(self.interactions),
            "similarity": self.similarity.stats(),
            "analytics": self.analytics.stats(),
            "persistence": self.writer.get_state() if self.writer is not None else None,
        }
