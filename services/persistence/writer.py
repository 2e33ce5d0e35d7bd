import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from models.snapshot import EngineSnapshot
from services.persistence.base import PersistenceGateway
from utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from utils.logger import setup_logger
from utils.prometheus_metrics import PrometheusMetrics, get_prometheus_metrics

logger = setup_logger(__name__)


class WriteBehindWriter:
    """Fire-and-forget snapshot writes on a single background thread.

    Requests only schedule a write; when several are queued behind a slow save
    only the most recent snapshot is written. Failures are logged and counted,
    and the circuit breaker stops retrying a gateway that keeps failing.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[PrometheusMetrics] = None
    ):
        self.gateway = gateway
        self.breaker = breaker or CircuitBreaker(name=f"persistence_{gateway.name}")
        self.metrics = metrics or get_prometheus_metrics()

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-writer")
        self._lock = threading.Lock()
        self._pending: Optional[Callable[[], EngineSnapshot]] = None
        self._future: Optional[Future] = None
        self._closed = False

        self.writes = 0
        self.failures = 0

    def schedule(self, build_snapshot: Callable[[], EngineSnapshot]) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Write scheduled after shutdown, ignoring")
                return

            already_queued = self._pending is not None
            self._pending = build_snapshot
            if not already_queued:
                self._future = self._executor.submit(self._drain)

    def _drain(self) -> None:
        with self._lock:
            build_snapshot = self._pending
            self._pending = None

        if build_snapshot is None:
            return

        try:
            snapshot = build_snapshot()
            self.breaker.call(self.gateway.save, snapshot)
            self.writes += 1
        except CircuitBreakerOpenError:
            self.failures += 1
            self.metrics.record_persistence_failure()
            logger.warning(
                "Snapshot write skipped, persistence circuit open",
                extra={"gateway": self.gateway.name}
            )
        except Exception as e:
            self.failures += 1
            self.metrics.record_persistence_failure()
            logger.error(
                "Snapshot write failed",
                extra={"gateway": self.gateway.name, "error": str(e)},
                exc_info=True
            )

    def flush(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            future = self._future
        if future is not None:
            future.result(timeout=timeout)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)
        logger.info(
            "Snapshot writer stopped",
            extra={"gateway": self.gateway.name, "writes": self.writes, "failures": self.failures}
        )

    def get_state(self) -> dict:
        return {
            "gateway": self.gateway.name,
            "writes": self.writes,
            "failures": self.failures,
            "pending": self._pending is not None,
            "circuit_breaker": self.breaker.get_state(),
        }
