from enum import Enum


class WorkoutType(str, Enum):
    STRENGTH = "STRENGTH"
    CONDITIONING = "CONDITIONING"
    HYBRID = "HYBRID"
    AGILITY = "AGILITY"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    def gap(self, other: "Difficulty") -> int:
        return abs(self.rank - other.rank)


_DIFFICULTY_ORDER = [
    Difficulty.BEGINNER,
    Difficulty.INTERMEDIATE,
    Difficulty.ADVANCED,
    Difficulty.ELITE,
]


class Season(str, Enum):
    PRESEASON = "preseason"
    INSEASON = "inseason"
    PLAYOFFS = "playoffs"
    OFFSEASON = "offseason"

    @classmethod
    def for_month(cls, month: int) -> "Season":
        """Hockey calendar bucket for a 1-based calendar month."""
        if 7 <= month <= 9:
            return cls.OFFSEASON
        if 10 <= month <= 11:
            return cls.PRESEASON
        if month == 12 or month <= 3:
            return cls.INSEASON
        return cls.PLAYOFFS


class SessionType(str, Enum):
    SCHEDULED = "scheduled"
    ADHOC = "adhoc"
    REPEATED = "repeated"


class InteractionKind(str, Enum):
    VIEWED = "viewed"
    STARTED = "started"
    COMPLETED = "completed"
    RATED = "rated"
    SKIPPED = "skipped"


class ModificationType(str, Enum):
    EXERCISE_ADDED = "exercise_added"
    EXERCISE_REMOVED = "exercise_removed"
    EXERCISE_MODIFIED = "exercise_modified"
    DURATION_CHANGED = "duration_changed"
    INTENSITY_CHANGED = "intensity_changed"


class ModificationImpact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class TrendMetric(str, Enum):
    COMPLETION_RATE = "completion_rate"
    SATISFACTION = "satisfaction"
    INJURY_RATE = "injury_rate"
    INTENSITY = "intensity"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class Timeframe(str, Enum):
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])


class ReasonType(str, Enum):
    SIMILAR_USERS = "similar_users"
    CONTENT_SIMILARITY = "content_similarity"
    SEASONAL_TREND = "seasonal_trend"
    SUCCESS_RATE = "success_rate"
    TEAM_PREFERENCE = "team_preference"


class ContextFactorType(str, Enum):
    TIME_OF_SEASON = "time_of_season"
    PLAYER_LEVEL = "player_level"
    AVAILABLE_EQUIPMENT = "available_equipment"
    TEAM_SIZE = "team_size"
    RECENT_WORKOUTS = "recent_workouts"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class CandidateSource(str, Enum):
    COLLABORATIVE = "collaborative"
    CONTENT_BASED = "content_based"
    POPULARITY = "popularity"
    CONTEXTUAL = "contextual"


class AlgorithmTag(str, Enum):
    COLLABORATIVE = "collaborative"
    CONTENT_BASED = "content_based"
    HYBRID = "hybrid"
    POPULARITY = "popularity"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_confidence(cls, confidence: float) -> "ConfidenceLevel":
        if confidence > 0.7:
            return cls.HIGH
        if confidence > 0.4:
            return cls.MEDIUM
        return cls.LOW


class SimilarityFactorName(str, Enum):
    TYPE = "type"
    DIFFICULTY = "difficulty"
    EQUIPMENT = "equipment"
    CATEGORIES = "categories"
    DURATION = "duration"
    KEYWORDS = "keywords"
