from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field as PydanticField
from sqlalchemy import Column, Text
from sqlmodel import SQLModel, Field

from models.events import PerformanceRecord, UsageEvent, utcnow
from models.template import TemplateFeatureVector

SNAPSHOT_VERSION = 1


class RecommenderSnapshot(SQLModel, table=True):
    """One row per snapshot key; payload is the serialized EngineSnapshot."""
    __tablename__ = "recommender_snapshot"

    key: str = Field(primary_key=True)
    version: int = Field(default=SNAPSHOT_VERSION)
    payload: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow)


class TemplateSimilarityMatrix(BaseModel):
    template_ids: List[str] = PydanticField(default_factory=list)
    scores: List[List[float]] = PydanticField(default_factory=list)


class EngineSnapshot(BaseModel):
    version: int = SNAPSHOT_VERSION
    saved_at: datetime = PydanticField(default_factory=utcnow)
    interactions: Dict[str, Dict[str, float]] = PydanticField(default_factory=dict)
    template_similarities: Optional[TemplateSimilarityMatrix] = None
    user_similarities: Dict[str, Dict[str, float]] = PydanticField(default_factory=dict)
    features: List[TemplateFeatureVector] = PydanticField(default_factory=list)
    usage_events: List[UsageEvent] = PydanticField(default_factory=list)
    performance_records: List[PerformanceRecord] = PydanticField(default_factory=list)
