"""
Template analytics from usage and performance event logs.

Every metric is a pure function of the two append-only logs plus the clock, so
recomputing from unchanged logs yields identical numbers. Snapshots are cached
per template for a fixed TTL and dropped as soon as a new event arrives for
that template.
"""

import json
import math
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from models import (
    ModificationImpact,
    ModificationPattern,
    ModificationType,
    PerformanceRecord,
    PerformanceTrend,
    PlayerFeedbackSummary,
    Season,
    SeasonalUsagePattern,
    TemplateAnalyticsSnapshot,
    TemplateRanking,
    Timeframe,
    TrendDirection,
    TrendMetric,
    UsageEvent,
    utcnow,
)
from utils.logger import setup_logger
from utils.prometheus_metrics import PrometheusMetrics, get_prometheus_metrics

logger = setup_logger(__name__)

EFFECTIVENESS_WEIGHTS = {
    "completion_rate": 0.25,
    "satisfaction": 0.20,
    "injury_rate": 0.20,
    "modification_rate": 0.15,
    "repeat_usage": 0.10,
    "player_progress": 0.10,
}

MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

MODIFICATION_DESCRIPTIONS = {
    ModificationType.EXERCISE_ADDED: "Trainers frequently add exercises to this template",
    ModificationType.EXERCISE_REMOVED: "Some exercises are often skipped or removed",
    ModificationType.EXERCISE_MODIFIED: "Exercise parameters are commonly adjusted",
    ModificationType.DURATION_CHANGED: "Session duration is frequently modified",
    ModificationType.INTENSITY_CHANGED: "Intensity levels are often adjusted",
}

DEFAULT_SATISFACTION = 5.0
NEUTRAL_PROGRESS = 0.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _impact_label(average_completion: float) -> ModificationImpact:
    if average_completion > 0.7:
        return ModificationImpact.POSITIVE
    if average_completion < 0.5:
        return ModificationImpact.NEGATIVE
    return ModificationImpact.NEUTRAL


def _suggested_action(average_completion: float) -> str:
    if average_completion > 0.7:
        return "Consider incorporating common modifications into the base template"
    if average_completion < 0.5:
        return "Review why this modification is needed and consider template redesign"
    return "Monitor this modification pattern for optimization opportunities"


TREND_METRICS: List[Tuple[TrendMetric, Callable[[PerformanceRecord], float]]] = [
    (TrendMetric.COMPLETION_RATE, lambda record: record.completion_rate),
    (TrendMetric.SATISFACTION, lambda record: record.satisfaction if record.satisfaction is not None else DEFAULT_SATISFACTION),
    (TrendMetric.INJURY_RATE, lambda record: float(record.injury_incidents)),
    (TrendMetric.INTENSITY, lambda record: record.average_intensity),
]


class AnalyticsEngine:
    def __init__(
        self,
        cache_ttl_minutes: int = 30,
        trend_threshold_percent: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
        metrics: Optional[PrometheusMetrics] = None
    ):
        if cache_ttl_minutes <= 0:
            raise ValueError("cache_ttl_minutes must be positive")

        self.cache_ttl = timedelta(minutes=cache_ttl_minutes)
        self.trend_threshold_percent = trend_threshold_percent
        self.clock = clock or utcnow
        self.metrics = metrics or get_prometheus_metrics()

        self._lock = threading.RLock()
        self._usage: Dict[str, List[UsageEvent]] = {}
        self._performance: Dict[str, List[PerformanceRecord]] = {}
        self._cache: Dict[str, Tuple[TemplateAnalyticsSnapshot, datetime]] = {}

    # ingestion

    def track_usage(self, event: UsageEvent) -> None:
        with self._lock:
            self._usage.setdefault(event.template_id, []).append(event)
            self.invalidate(event.template_id)

        logger.debug(
            "Usage event tracked",
            extra={
                "template_id": event.template_id,
                "user_id": event.user_id,
                "session_type": event.session_type.value,
                "modifications": len(event.modifications)
            }
        )

    def record_performance(self, record: PerformanceRecord) -> None:
        with self._lock:
            self._performance.setdefault(record.template_id, []).append(record)
            self.invalidate(record.template_id)

        logger.debug(
            "Performance record stored",
            extra={
                "template_id": record.template_id,
                "session_id": record.session_id,
                "completion_rate": record.completion_rate
            }
        )

    def invalidate(self, template_id: str) -> None:
        with self._lock:
            self._cache.pop(template_id, None)

    def _usages(self, template_id: str) -> List[UsageEvent]:
        return list(self._usage.get(template_id, []))

    def _performances(self, template_id: str) -> List[PerformanceRecord]:
        return list(self._performance.get(template_id, []))

    def tracked_templates(self) -> List[str]:
        return [template_id for template_id, events in self._usage.items() if events]

    # snapshots

    def get_template_analytics(self, template_id: str) -> TemplateAnalyticsSnapshot:
        now = self.clock()

        with self._lock:
            cached = self._cache.get(template_id)
            if cached is not None and now < cached[1]:
                self.metrics.record_cache_lookup(hit=True)
                return cached[0]

            self.metrics.record_cache_lookup(hit=False)
            snapshot = self._calculate_analytics(template_id, now)
            self._cache[template_id] = (snapshot, now + self.cache_ttl)

        return snapshot

    def get_bulk_analytics(self, template_ids: Iterable[str]) -> Dict[str, TemplateAnalyticsSnapshot]:
        results: Dict[str, TemplateAnalyticsSnapshot] = {}
        failed: List[str] = []

        for template_id in template_ids:
            try:
                results[template_id] = self.get_template_analytics(template_id)
            except Exception:
                # one bad template must not blank the whole dashboard
                logger.exception(
                    "Analytics computation failed for template",
                    extra={"template_id": template_id}
                )
                failed.append(template_id)

        if failed:
            logger.warning(
                "Bulk analytics completed with failures",
                extra={"succeeded": len(results), "failed": failed}
            )

        return results

    def _calculate_analytics(self, template_id: str, now: datetime) -> TemplateAnalyticsSnapshot:
        usages = self._usages(template_id)
        performances = self._performances(template_id)

        ratings = [p.satisfaction for p in performances if p.satisfaction is not None]

        return TemplateAnalyticsSnapshot(
            template_id=template_id,
            total_usage=len(usages),
            unique_users=len({u.user_id for u in usages}),
            average_rating=_clamp(_mean(ratings) / 10.0, 0.0, 1.0),
            completion_rate=_mean(p.completion_rate for p in performances),
            effectiveness_score=self.calculate_effectiveness_score(template_id),
            popularity_score=self.calculate_popularity_score(template_id),
            modification_frequency=self._modification_rate(usages),
            common_modifications=self.get_modification_patterns(template_id),
            performance_trends=self.get_performance_trends(template_id, now=now),
            seasonal_usage=self.get_seasonal_usage(template_id),
            player_feedback=self.get_player_feedback_summary(template_id),
            days_since_last_use=self.days_since_last_use(template_id, now=now),
            last_updated=now,
        )

    # scores

    def calculate_effectiveness_score(self, template_id: str) -> int:
        performances = self._performances(template_id)
        if not performances:
            return 0

        usages = self._usages(template_id)
        w = EFFECTIVENESS_WEIGHTS

        completion = _mean(p.completion_rate for p in performances)
        satisfaction = _mean(p.satisfaction for p in performances if p.satisfaction is not None) / 10.0
        injury_rate = self._injury_rate(performances)
        modification_rate = self._modification_rate(usages)
        repeat_usage = self._repeat_usage_rate(usages)
        progress = self._player_progress(performances)

        score = 100.0 * (
            completion * w["completion_rate"]
            + satisfaction * w["satisfaction"]
            + (1.0 - injury_rate) * w["injury_rate"]
            + (1.0 - modification_rate) * w["modification_rate"]
            + repeat_usage * w["repeat_usage"]
            + progress * w["player_progress"]
        )

        return round_half_up(_clamp(score, 0.0, 100.0))

    def calculate_popularity_score(self, template_id: str) -> int:
        with self._lock:
            counts = {tid: len(events) for tid, events in self._usage.items() if events}

        if len(counts) < 2:
            return 0

        highest = max(counts.values())
        lowest = min(counts.values())
        if highest == lowest:
            return 50

        current = counts.get(template_id, 0)
        normalized = _clamp((current - lowest) / (highest - lowest), 0.0, 1.0)
        return round_half_up(normalized * 100)

    @staticmethod
    def _injury_rate(performances: List[PerformanceRecord]) -> float:
        if not performances:
            return 0.0
        return sum(p.injury_incidents for p in performances) / len(performances)

    @staticmethod
    def _modification_rate(usages: List[UsageEvent]) -> float:
        if not usages:
            return 0.0
        return sum(1 for u in usages if u.is_modified) / len(usages)

    @staticmethod
    def _repeat_usage_rate(usages: List[UsageEvent]) -> float:
        per_user: Dict[str, int] = {}
        for usage in usages:
            per_user[usage.user_id] = per_user.get(usage.user_id, 0) + 1
        if not per_user:
            return 0.0
        return sum(1 for count in per_user.values() if count > 1) / len(per_user)

    @staticmethod
    def _player_progress(performances: List[PerformanceRecord]) -> float:
        if len(performances) < 2:
            return NEUTRAL_PROGRESS

        series: Dict[str, List[float]] = {}
        for record in sorted(performances, key=lambda p: p.timestamp):
            for metric in record.player_metrics:
                series.setdefault(metric.player_id, []).append(metric.exercise_completion_rate)

        improvements = [scores[-1] - scores[0] for scores in series.values() if len(scores) >= 2]
        if not improvements:
            return NEUTRAL_PROGRESS

        return _clamp(_mean(improvements) + NEUTRAL_PROGRESS, 0.0, 1.0)

    # patterns and trends

    def get_modification_patterns(self, template_id: str) -> List[ModificationPattern]:
        usages = self._usages(template_id)
        performances = self._performances(template_id)

        counts: Dict[ModificationType, int] = {}
        impacts: Dict[ModificationType, List[float]] = {}

        for usage in usages:
            for modification in usage.modifications:
                counts[modification.type] = counts.get(modification.type, 0) + 1

        for record in performances:
            for modification in record.modifications:
                counts[modification.type] = counts.get(modification.type, 0) + 1
                impacts.setdefault(modification.type, []).append(record.completion_rate)

        patterns = []
        for mod_type, count in counts.items():
            observed = impacts.get(mod_type)
            average_completion = _mean(observed) if observed else 0.5
            patterns.append(ModificationPattern(
                type=mod_type,
                frequency=count / max(len(usages), 1),
                impact=_impact_label(average_completion),
                description=MODIFICATION_DESCRIPTIONS.get(mod_type, "Template is commonly modified"),
                suggested_action=_suggested_action(average_completion),
            ))

        patterns.sort(key=lambda pattern: pattern.frequency, reverse=True)
        return patterns

    def get_performance_trends(self, template_id: str, now: Optional[datetime] = None) -> List[PerformanceTrend]:
        performances = self._performances(template_id)
        if not performances:
            return []

        now = now or self.clock()
        trends: List[PerformanceTrend] = []

        for timeframe in Timeframe:
            cutoff = now - timedelta(days=timeframe.days)
            window = sorted(
                (p for p in performances if p.timestamp >= cutoff),
                key=lambda p: p.timestamp
            )
            if len(window) < 2:
                continue

            for metric, getter in TREND_METRICS:
                direction, change = self._trend([getter(p) for p in window])
                trends.append(PerformanceTrend(
                    metric=metric,
                    trend=direction,
                    change_percent=change,
                    timeframe=timeframe,
                ))

        return trends

    def _trend(self, values: List[float]) -> Tuple[TrendDirection, int]:
        if len(values) < 2:
            return TrendDirection.STABLE, 0

        half = len(values) // 2
        first_avg = _mean(values[:half])
        second_avg = _mean(values[half:])

        change = (second_avg - first_avg) / first_avg * 100 if first_avg > 0 else 0.0

        if abs(change) < self.trend_threshold_percent:
            direction = TrendDirection.STABLE
        elif change > 0:
            direction = TrendDirection.IMPROVING
        else:
            direction = TrendDirection.DECLINING

        return direction, round_half_up(change)

    def get_seasonal_usage(self, template_id: str) -> SeasonalUsagePattern:
        usages = self._usages(template_id)

        season_counts = {season: 0 for season in Season}
        monthly = [0] * 12

        for usage in usages:
            month = usage.timestamp.month
            monthly[month - 1] += 1
            season_counts[Season.for_month(month)] += 1

        total = len(usages) or 1

        return SeasonalUsagePattern(
            preseason=season_counts[Season.PRESEASON] / total,
            inseason=season_counts[Season.INSEASON] / total,
            playoffs=season_counts[Season.PLAYOFFS] / total,
            offseason=season_counts[Season.OFFSEASON] / total,
            peak_month=MONTH_LABELS[monthly.index(max(monthly))],
            lowest_month=MONTH_LABELS[monthly.index(min(monthly))],
        )

    def get_player_feedback_summary(self, template_id: str) -> PlayerFeedbackSummary:
        performances = self._performances(template_id)
        if not performances:
            return PlayerFeedbackSummary()

        usages = self._usages(template_id)
        ratings = [p.satisfaction for p in performances if p.satisfaction is not None]

        average_rating = _mean(ratings)
        average_completion = _mean(p.completion_rate for p in performances)
        injury_rate = self._injury_rate(performances)
        modification_rate = self._modification_rate(usages)

        sentiment = (
            (average_rating - 5.0) / 5.0
            + (average_completion - 0.5) * 2.0
            - injury_rate * 2.0
        ) / 3.0

        praise = []
        if average_completion > 0.8:
            praise.append("Well-structured and achievable")
        if average_rating > 7:
            praise.append("Engaging and motivating")
        if injury_rate < 0.1:
            praise.append("Safe and well-designed")
        if modification_rate < 0.2:
            praise.append("Perfect as designed")

        complaints = []
        if average_completion < 0.6:
            complaints.append("Too challenging or time-consuming")
        if average_rating < 5:
            complaints.append("Not engaging or poorly structured")
        if injury_rate > 0.2:
            complaints.append("Risk of injury too high")
        if modification_rate > 0.5:
            complaints.append("Needs frequent adjustments")

        return PlayerFeedbackSummary(
            average_rating=average_rating,
            total_responses=len(ratings),
            sentiment_score=_clamp(sentiment, -1.0, 1.0),
            common_praise=praise,
            common_complaints=complaints,
            recommendation_rate=sum(1 for r in ratings if r >= 7) / max(len(ratings), 1),
        )

    def days_since_last_use(self, template_id: str, now: Optional[datetime] = None) -> Optional[float]:
        usages = self._usages(template_id)
        if not usages:
            return None

        now = now or self.clock()
        latest = max(u.timestamp for u in usages)
        return max(0.0, (now - latest).total_seconds() / 86400.0)

    # reporting

    def get_template_rankings(self, template_ids: Iterable[str]) -> List[TemplateRanking]:
        scored = [(template_id, self.calculate_effectiveness_score(template_id)) for template_id in template_ids]
        scored.sort(key=lambda item: item[1], reverse=True)

        return [
            TemplateRanking(template_id=template_id, rank=index + 1, score=score)
            for index, (template_id, score) in enumerate(scored)
        ]

    def export_analytics(self, template_id: str) -> str:
        analytics = self.get_template_analytics(template_id)
        usages = self._usages(template_id)
        timestamps = sorted(u.timestamp for u in usages)

        export = {
            "template_id": template_id,
            "analytics": analytics.model_dump(mode="json"),
            "raw_data": {
                "usage_events": len(usages),
                "performance_records": len(self._performances(template_id)),
                "date_range": {
                    "start": timestamps[0].isoformat() if timestamps else None,
                    "end": timestamps[-1].isoformat() if timestamps else None,
                },
            },
            "generated_at": self.clock().isoformat(),
        }

        return json.dumps(export, indent=2)

    # persistence

    def export_events(self) -> Tuple[List[UsageEvent], List[PerformanceRecord]]:
        with self._lock:
            usage = [event for events in self._usage.values() for event in events]
            performance = [record for records in self._performance.values() for record in records]
        return usage, performance

    def restore_events(self, usage: Iterable[UsageEvent], performance: Iterable[PerformanceRecord]) -> None:
        with self._lock:
            self._usage = {}
            self._performance = {}
            self._cache = {}
            for event in usage:
                self._usage.setdefault(event.template_id, []).append(event)
            for record in performance:
                self._performance.setdefault(record.template_id, []).append(record)

        logger.info(
            "Analytics event logs restored",
            extra={
                "usage_templates": len(self._usage),
                "performance_templates": len(self._performance)
            }
        )

    def stats(self) -> Dict[str, int]:
        return {
            "usage_events": sum(len(events) for events in self._usage.values()),
            "performance_records": sum(len(records) for records in self._performance.values()),
            "cached_snapshots": len(self._cache),
        }
