from typing import Optional

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST

from utils.logger import setup_logger

logger = setup_logger(__name__)


class PrometheusMetrics:
    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        # own registry so repeated app construction in tests never collides
        self.registry = CollectorRegistry()

        if not self.enabled:
            return

        self.request_count = Counter(
            'recommender_requests_total',
            'Total number of HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'recommender_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.recommendation_count = Counter(
            'recommender_recommendations_total',
            'Recommendation results generated',
            ['algorithm'],
            registry=self.registry
        )

        self.recommendation_duration = Histogram(
            'recommender_recommendation_duration_seconds',
            'Recommendation generation duration in seconds',
            registry=self.registry
        )

        self.interaction_count = Counter(
            'recommender_interactions_total',
            'Recorded user/template interactions',
            ['kind'],
            registry=self.registry
        )

        self.analytics_cache = Counter(
            'recommender_analytics_cache_total',
            'Analytics snapshot cache lookups',
            ['result'],
            registry=self.registry
        )

        self.persistence_failures = Counter(
            'recommender_persistence_failures_total',
            'Snapshot writes that failed or were rejected by the circuit breaker',
            registry=self.registry
        )

        self.catalog_size = Gauge(
            'recommender_catalog_size',
            'Number of template feature vectors loaded',
            registry=self.registry
        )

        logger.info("Prometheus metrics initialized successfully")

    def record_request(self, method: str, endpoint: str, status: int, duration_seconds: float):
        if not self.enabled:
            return

        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    def record_recommendation(self, algorithm: str, duration_seconds: float):
        if not self.enabled:
            return

        self.recommendation_count.labels(algorithm=algorithm).inc()
        self.recommendation_duration.observe(duration_seconds)

    def record_interaction(self, kind: str):
        if not self.enabled:
            return

        self.interaction_count.labels(kind=kind).inc()

    def record_cache_lookup(self, hit: bool):
        if not self.enabled:
            return

        self.analytics_cache.labels(result="hit" if hit else "miss").inc()

    def record_persistence_failure(self):
        if not self.enabled:
            return

        self.persistence_failures.inc()

    def set_catalog_size(self, size: int):
        if not self.enabled:
            return

        self.catalog_size.set(size)

    def generate_metrics(self) -> bytes:
        if not self.enabled:
            return b""

        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        if not self.enabled:
            return "text/plain"

        return CONTENT_TYPE_LATEST


prometheus_metrics: Optional[PrometheusMetrics] = None


def init_prometheus_metrics(enabled: bool = False) -> PrometheusMetrics:
    global prometheus_metrics
    prometheus_metrics = PrometheusMetrics(enabled=enabled)
    return prometheus_metrics


def get_prometheus_metrics() -> PrometheusMetrics:
    # disabled collector until the app initializes a real one
    global prometheus_metrics
    if prometheus_metrics is None:
        prometheus_metrics = PrometheusMetrics(enabled=False)
    return prometheus_metrics
