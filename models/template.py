from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import Difficulty, WorkoutType
from models.types import Score01


class TemplateFeatureVector(BaseModel):
    """Read-only feature descriptor for one workout template."""

    model_config = ConfigDict(frozen=True)

    template_id: str
    type: WorkoutType
    categories: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    duration: float = Field(60, ge=0, description="Planned duration in minutes")
    primary_muscle_groups: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list, description="Token bag, repeats allowed")
    tags: List[str] = Field(default_factory=list)
    intensity_score: Score01 = 0.5
    complexity_score: Score01 = 0.5

    @property
    def completeness(self) -> float:
        present = [
            bool(self.equipment),
            bool(self.categories),
            bool(self.keywords),
            bool(self.primary_muscle_groups),
        ]
        return sum(present) / len(present)


class RawExercise(BaseModel):
    name: Optional[str] = None
    muscle_groups: List[str] = Field(default_factory=list)


class RawTemplate(BaseModel):
    """Template payload as the external catalog ships it."""

    id: str
    name: str
    type: WorkoutType
    description: Optional[str] = None
    category: Optional[str] = None
    category_ids: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    difficulty: Optional[Difficulty] = None
    duration: Optional[float] = Field(None, ge=0)
    exercises: List[RawExercise] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
