import re
from typing import Iterable, List

from models import Difficulty, RawTemplate, TemplateFeatureVector, WorkoutType

STOP_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})

DEFAULT_DURATION_MINUTES = 60

_TOKEN_SPLIT = re.compile(r"\W+")

_HARD_LEVELS = (Difficulty.ADVANCED, Difficulty.ELITE)


def _tokens(text: str) -> List[str]:
    return [token for token in _TOKEN_SPLIT.split(text.lower()) if token]


def extract_keywords(template: RawTemplate) -> List[str]:
    """Token bag from name, description and exercise names, stop words removed.

    Name/description tokens shorter than three characters are dropped; exercise
    names keep every token so short movement codes ("rdl", "kb") survive.
    """
    text = f"{template.name} {template.description or ''}"
    words = [word for word in _tokens(text) if len(word) > 2]

    for exercise in template.exercises:
        if exercise.name:
            words.extend(_tokens(exercise.name))

    return [word for word in words if word not in STOP_WORDS]


def extract_muscle_groups(template: RawTemplate) -> List[str]:
    seen: List[str] = []
    for exercise in template.exercises:
        for group in exercise.muscle_groups:
            if group not in seen:
                seen.append(group)
    return seen


def intensity_score(template: RawTemplate) -> float:
    score = 0.5
    if template.type == WorkoutType.CONDITIONING:
        score += 0.2
    if template.type == WorkoutType.AGILITY:
        score += 0.1
    if template.difficulty in _HARD_LEVELS:
        score += 0.2
    if (template.duration or 0) > 60:
        score += 0.1
    return min(1.0, round(score, 4))


def complexity_score(template: RawTemplate) -> float:
    score = 0.5
    if len(template.exercises) > 8:
        score += 0.2
    if len(template.equipment) > 5:
        score += 0.1
    if template.type == WorkoutType.HYBRID:
        score += 0.2
    if template.difficulty in _HARD_LEVELS:
        score += 0.1
    return min(1.0, round(score, 4))


def extract_features(template: RawTemplate) -> TemplateFeatureVector:
    if template.category_ids:
        categories = list(template.category_ids)
    elif template.category:
        categories = [template.category]
    else:
        categories = []

    return TemplateFeatureVector(
        template_id=template.id,
        type=template.type,
        categories=categories,
        equipment=list(template.equipment),
        difficulty=template.difficulty or Difficulty.INTERMEDIATE,
        duration=template.duration if template.duration else DEFAULT_DURATION_MINUTES,
        primary_muscle_groups=extract_muscle_groups(template),
        keywords=extract_keywords(template),
        tags=list(template.tags),
        intensity_score=intensity_score(template),
        complexity_score=complexity_score(template),
    )


def extract_all(templates: Iterable[RawTemplate]) -> List[TemplateFeatureVector]:
    return [extract_features(template) for template in templates]
