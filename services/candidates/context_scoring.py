from typing import Dict, List, Sequence

from models import (
    ContextFactor,
    ContextFactorType,
    Difficulty,
    RecommendationContext,
    Season,
    TemplateFeatureVector,
    WorkoutType,
)

SEASONAL_INFLUENCE: Dict[Season, Dict[WorkoutType, float]] = {
    Season.PRESEASON: {
        WorkoutType.CONDITIONING: 0.8,
        WorkoutType.STRENGTH: 0.9,
        WorkoutType.HYBRID: 0.7,
        WorkoutType.AGILITY: 0.6,
    },
    Season.INSEASON: {
        WorkoutType.CONDITIONING: 0.6,
        WorkoutType.STRENGTH: 0.5,
        WorkoutType.HYBRID: 0.8,
        WorkoutType.AGILITY: 0.9,
    },
    Season.PLAYOFFS: {
        WorkoutType.CONDITIONING: 0.7,
        WorkoutType.STRENGTH: 0.4,
        WorkoutType.HYBRID: 0.6,
        WorkoutType.AGILITY: 0.9,
    },
    Season.OFFSEASON: {
        WorkoutType.CONDITIONING: 0.5,
        WorkoutType.STRENGTH: 1.0,
        WorkoutType.HYBRID: 0.8,
        WorkoutType.AGILITY: 0.3,
    },
}

DEFAULT_SEASONAL_INFLUENCE = 0.5
LEVEL_GAP_PENALTY = 0.3


def seasonal_influence(workout_type: WorkoutType, season: Season) -> float:
    return SEASONAL_INFLUENCE.get(season, {}).get(workout_type, DEFAULT_SEASONAL_INFLUENCE)


def level_match(template_level: Difficulty, player_level: Difficulty) -> float:
    return max(0.0, 1.0 - template_level.gap(player_level) * LEVEL_GAP_PENALTY)


def equipment_match(required: Sequence[str], available: Sequence[str]) -> float:
    if not required:
        return 1.0
    available_set = set(available)
    return sum(1 for item in required if item in available_set) / len(required)


def context_factors_for(features: TemplateFeatureVector, context: RecommendationContext) -> List[ContextFactor]:
    factors = [
        ContextFactor(
            factor=ContextFactorType.TIME_OF_SEASON,
            value=context.season.value,
            influence=seasonal_influence(features.type, context.season),
        ),
        ContextFactor(
            factor=ContextFactorType.PLAYER_LEVEL,
            value=context.player_level.value,
            influence=level_match(features.difficulty, context.player_level),
        ),
    ]

    if context.available_equipment:
        factors.append(ContextFactor(
            factor=ContextFactorType.AVAILABLE_EQUIPMENT,
            value=list(context.available_equipment),
            influence=equipment_match(features.equipment, context.available_equipment),
        ))

    return factors
