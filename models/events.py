from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.enums import ModificationType, SessionType
from models.types import Rating010, Score01


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    # naive timestamps are treated as UTC so windows compare cleanly
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TemplateModification(BaseModel):
    type: ModificationType
    original_value: Any = None
    new_value: Any = None
    exercise_id: Optional[str] = None
    reason: Optional[str] = None


class UsageEvent(BaseModel):
    template_id: str
    user_id: str
    team_id: Optional[str] = None
    session_id: str
    timestamp: datetime
    session_type: SessionType = SessionType.SCHEDULED
    modifications: List[TemplateModification] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def is_modified(self) -> bool:
        return len(self.modifications) > 0


class PlayerPerformanceMetrics(BaseModel):
    player_id: str
    exercise_completion_rate: Score01
    average_heart_rate: Optional[float] = Field(None, ge=0)
    max_heart_rate: Optional[float] = Field(None, ge=0)
    average_power: Optional[float] = Field(None, ge=0)
    rpe: Optional[Rating010] = None
    recovery_time: float = Field(0, ge=0, description="Minutes")
    injury_risk: Score01 = 0.0


class PerformanceRecord(BaseModel):
    template_id: str
    session_id: str
    player_metrics: List[PlayerPerformanceMetrics] = Field(default_factory=list)
    completion_rate: Score01
    average_intensity: float = Field(0, ge=0)
    satisfaction: Optional[float] = Field(None, ge=1, le=10, description="Player rating, 1-10")
    injury_incidents: int = Field(0, ge=0)
    modifications: List[TemplateModification] = Field(default_factory=list)
    session_duration: float = Field(0, ge=0, description="Actual minutes")
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)
