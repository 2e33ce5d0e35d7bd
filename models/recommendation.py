from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from models.enums import (
    AlgorithmTag,
    ConfidenceLevel,
    ContextFactorType,
    Difficulty,
    ReasonType,
    Season,
)
from models.types import Score01


class TeamPreferences(BaseModel):
    focus_areas: List[str] = Field(default_factory=list)
    avoided_exercises: List[str] = Field(default_factory=list)
    preferred_intensity: Optional[Score01] = None
    session_length_preference: Optional[float] = Field(None, gt=0)


class RecommendationContext(BaseModel):
    user_id: str
    team_id: Optional[str] = None
    season: Season
    available_time: float = Field(..., gt=0, description="Minutes available for the session")
    available_equipment: List[str] = Field(default_factory=list)
    recent_workouts: List[str] = Field(default_factory=list)
    training_goals: List[str] = Field(default_factory=list)
    player_level: Difficulty = Difficulty.INTERMEDIATE
    medical_restrictions: List[str] = Field(default_factory=list)
    team_preferences: Optional[TeamPreferences] = None


class RecommendationReason(BaseModel):
    type: ReasonType
    weight: float
    description: str


class ContextFactor(BaseModel):
    factor: ContextFactorType
    value: Any = None
    influence: float = Field(..., ge=-1.0, le=1.0)


class RecommendationCandidate(BaseModel):
    template_id: str
    score: Score01
    reasons: List[RecommendationReason] = Field(default_factory=list)
    context_factors: List[ContextFactor] = Field(default_factory=list)
    confidence: Score01


class RecommendationExplanation(BaseModel):
    template_id: str
    primary_reason: str
    supporting_factors: List[str] = Field(default_factory=list)
    confidence_level: ConfidenceLevel


class RecommendationMetadata(BaseModel):
    algorithm: AlgorithmTag
    confidence: Score01
    context_factors: List[str] = Field(default_factory=list)
    filtering_criteria: List[str] = Field(default_factory=list)
    generated_at: datetime


class RecommendationResult(BaseModel):
    recommendations: List[RecommendationCandidate] = Field(default_factory=list)
    explanations: List[RecommendationExplanation] = Field(default_factory=list)
    alternative_options: List[RecommendationCandidate] = Field(default_factory=list)
    metadata: RecommendationMetadata
