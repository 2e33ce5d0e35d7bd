import time
from typing import Optional, Dict, Any
from contextlib import contextmanager

from utils.logger import setup_logger

logger = setup_logger(__name__)


class StageTimer:
    """Collects per-stage wall time for one pipeline run (recommend, rebuild, export)."""

    def __init__(self, operation: str, correlation_id: Optional[str] = None):
        self.operation = operation
        self.correlation_id = correlation_id
        self.stages: Dict[str, float] = {}

    @contextmanager
    def stage(self, stage_name: str):
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            # repeated stages accumulate
            self.stages[stage_name] = round(self.stages.get(stage_name, 0.0) + elapsed_ms, 2)
            logger.debug(
                f"Stage completed: {stage_name}",
                extra={
                    "operation": self.operation,
                    "stage": stage_name,
                    "duration_ms": elapsed_ms,
                    "correlation_id": self.correlation_id
                }
            )

    @property
    def total_ms(self) -> float:
        return round(sum(self.stages.values()), 2)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "stages": dict(self.stages),
            "total_duration_ms": self.total_ms,
            "stage_count": len(self.stages)
        }

    def log_summary(self, **extra: Any):
        summary = self.get_summary()
        summary.update(extra)
        summary["correlation_id"] = self.correlation_id

        logger.info(f"{self.operation} timing summary", extra=summary)

