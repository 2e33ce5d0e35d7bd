from datetime import datetime, timedelta, timezone
from typing import List, Optional

from models import (
    Difficulty,
    PerformanceRecord,
    RecommendationContext,
    Season,
    SessionType,
    TemplateFeatureVector,
    TemplateModification,
    UsageEvent,
    WorkoutType,
)

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_features(
    template_id: str,
    type: WorkoutType = WorkoutType.STRENGTH,
    difficulty: Difficulty = Difficulty.INTERMEDIATE,
    duration: float = 30,
    equipment: Optional[List[str]] = None,
    categories: Optional[List[str]] = None,
    keywords: Optional[List[str]] = None,
    muscles: Optional[List[str]] = None
) -> TemplateFeatureVector:
    return TemplateFeatureVector(
        template_id=template_id,
        type=type,
        difficulty=difficulty,
        duration=duration,
        equipment=equipment if equipment is not None else [],
        categories=categories if categories is not None else ["strength"],
        keywords=keywords if keywords is not None else ["power", "legs"],
        primary_muscle_groups=muscles if muscles is not None else ["quads"],
    )


def demo_catalog() -> List[TemplateFeatureVector]:
    return [
        make_features("t1", equipment=["pucks"], keywords=["power", "legs", "squat"]),
        make_features("t2", equipment=["pucks"], keywords=["power", "legs", "lunge"]),
        make_features("t3", type=WorkoutType.CONDITIONING, duration=25, equipment=["cones"],
                      categories=["conditioning"], keywords=["shuttle", "sprint"]),
        make_features("t4", type=WorkoutType.AGILITY, duration=20, equipment=[],
                      categories=["agility"], keywords=["footwork", "ladder"]),
        make_features("t5", difficulty=Difficulty.ELITE, duration=90, equipment=["barbell"],
                      keywords=["max", "strength"]),
    ]


def make_context(
    user_id: str = "u1",
    season: Season = Season.INSEASON,
    available_time: float = 30,
    equipment: Optional[List[str]] = None,
    level: Difficulty = Difficulty.INTERMEDIATE,
    restrictions: Optional[List[str]] = None
) -> RecommendationContext:
    return RecommendationContext(
        user_id=user_id,
        season=season,
        available_time=available_time,
        available_equipment=equipment if equipment is not None else ["pucks", "cones"],
        player_level=level,
        medical_restrictions=restrictions or [],
    )


def make_usage(
    template_id: str,
    user_id: str,
    when: datetime = FIXED_NOW,
    session_id: Optional[str] = None,
    modifications: Optional[List[TemplateModification]] = None
) -> UsageEvent:
    return UsageEvent(
        template_id=template_id,
        user_id=user_id,
        session_id=session_id or f"{template_id}-{user_id}-{when.isoformat()}",
        timestamp=when,
        session_type=SessionType.SCHEDULED,
        modifications=modifications or [],
    )


def make_performance(
    template_id: str,
    completion: float = 0.9,
    satisfaction: Optional[float] = 9,
    injuries: int = 0,
    when: datetime = FIXED_NOW,
    intensity: float = 0.0,
    modifications: Optional[List[TemplateModification]] = None
) -> PerformanceRecord:
    return PerformanceRecord(
        template_id=template_id,
        session_id=f"{template_id}-{when.isoformat()}",
        completion_rate=completion,
        satisfaction=satisfaction,
        injury_incidents=injuries,
        average_intensity=intensity,
        modifications=modifications or [],
        timestamp=when,
    )
