from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import (
    ModificationImpact,
    ModificationType,
    Timeframe,
    TrendDirection,
    TrendMetric,
)
from models.types import Rating010, Score01


class ModificationPattern(BaseModel):
    type: ModificationType
    frequency: float = Field(..., ge=0, description="Occurrences per usage event")
    impact: ModificationImpact
    description: str
    suggested_action: Optional[str] = None


class PerformanceTrend(BaseModel):
    metric: TrendMetric
    trend: TrendDirection
    change_percent: int
    timeframe: Timeframe


class SeasonalUsagePattern(BaseModel):
    preseason: Score01 = 0.0
    inseason: Score01 = 0.0
    playoffs: Score01 = 0.0
    offseason: Score01 = 0.0
    peak_month: str
    lowest_month: str


class PlayerFeedbackSummary(BaseModel):
    average_rating: Rating010 = 0.0
    total_responses: int = 0
    sentiment_score: float = Field(0.0, ge=-1.0, le=1.0)
    common_praise: List[str] = Field(default_factory=list)
    common_complaints: List[str] = Field(default_factory=list)
    recommendation_rate: Score01 = 0.0


class TemplateAnalyticsSnapshot(BaseModel):
    template_id: str
    total_usage: int = 0
    unique_users: int = 0
    average_rating: Score01 = 0.0
    completion_rate: Score01 = 0.0
    effectiveness_score: int = Field(0, ge=0, le=100)
    popularity_score: int = Field(0, ge=0, le=100)
    modification_frequency: Score01 = 0.0
    common_modifications: List[ModificationPattern] = Field(default_factory=list)
    performance_trends: List[PerformanceTrend] = Field(default_factory=list)
    seasonal_usage: SeasonalUsagePattern
    player_feedback: PlayerFeedbackSummary
    days_since_last_use: Optional[float] = None
    last_updated: datetime


class TemplateRanking(BaseModel):
    template_id: str
    rank: int = Field(..., ge=1)
    score: int = Field(..., ge=0, le=100)
