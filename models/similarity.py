from typing import List

from pydantic import BaseModel, Field

from models.enums import SimilarityFactorName
from models.types import Score01


class SimilarityFactor(BaseModel):
    factor: SimilarityFactorName
    score: Score01
    weight: Score01


class SimilarityEdge(BaseModel):
    template_a: str
    template_b: str
    score: Score01
    factors: List[SimilarityFactor] = Field(default_factory=list)


class UserSimilarityEdge(BaseModel):
    user_a: str
    user_b: str
    score: float = Field(..., ge=-1.0, le=1.0)
