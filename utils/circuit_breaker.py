import threading
import time
from enum import Enum
from typing import Optional, Callable, Any

from utils.logger import setup_logger

logger = setup_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    pass


class CircuitBreaker:
    """Stops calling a failing dependency until a recovery window has passed.

    Used by the persistence writer so a broken gateway is not hit on every
    interaction. Safe to share between the request thread and the writer thread.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 60,
        expected_exception: type = Exception,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self.expected_exception = expected_exception
        self._clock = clock
        self._lock = threading.Lock()

        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self.state = CircuitState.CLOSED

    def call(self, func: Callable, *args, **kwargs) -> Any:
        self._before_call()

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _before_call(self):
        with self._lock:
            if self.state != CircuitState.OPEN:
                return

            if self._should_attempt_reset():
                logger.info(
                    f"Circuit breaker {self.name} attempting reset to HALF_OPEN",
                    extra={"circuit_breaker": self.name}
                )
                self.state = CircuitState.HALF_OPEN
                return

            logger.warning(
                f"Circuit breaker {self.name} is OPEN, rejecting call",
                extra={
                    "circuit_breaker": self.name,
                    "failure_count": self.failure_count
                }
            )
            raise CircuitBreakerOpenError(f"Circuit breaker {self.name} is open")

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_at is None:
            return True
        return self._clock() - self.last_failure_at >= self.recovery_timeout_seconds

    def _on_success(self):
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info(
                    f"Circuit breaker {self.name} recovered, transitioning to CLOSED",
                    extra={"circuit_breaker": self.name}
                )
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_at = None

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_at = self._clock()

            if self.state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit breaker {self.name} failed during HALF_OPEN, reopening",
                    extra={
                        "circuit_breaker": self.name,
                        "failure_count": self.failure_count
                    }
                )
                self.state = CircuitState.OPEN
            elif self.failure_count >= self.failure_threshold and self.state != CircuitState.OPEN:
                logger.error(
                    f"Circuit breaker {self.name} threshold reached, opening circuit",
                    extra={
                        "circuit_breaker": self.name,
                        "failure_count": self.failure_count,
                        "threshold": self.failure_threshold
                    }
                )
                self.state = CircuitState.OPEN

    def reset(self):
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_at = None
        logger.info(
            f"Circuit breaker {self.name} manually reset",
            extra={"circuit_breaker": self.name}
        )

    def get_state(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout_seconds": self.recovery_timeout_seconds
        }
