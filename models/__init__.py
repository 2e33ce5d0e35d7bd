from .enums import (
    AlgorithmTag,
    CandidateSource,
    ConfidenceLevel,
    ContextFactorType,
    Difficulty,
    InteractionKind,
    ModificationImpact,
    ModificationType,
    ReasonType,
    Season,
    SessionType,
    SimilarityFactorName,
    Timeframe,
    TrendDirection,
    TrendMetric,
    WorkoutType,
)
from .types import Rating010, Score01
from .template import RawExercise, RawTemplate, TemplateFeatureVector
from .events import PerformanceRecord, PlayerPerformanceMetrics, TemplateModification, UsageEvent, ensure_utc, utcnow
from .analytics import (
    ModificationPattern,
    PerformanceTrend,
    PlayerFeedbackSummary,
    SeasonalUsagePattern,
    TemplateAnalyticsSnapshot,
    TemplateRanking,
)
from .similarity import SimilarityEdge, SimilarityFactor, UserSimilarityEdge
from .recommendation import (
    ContextFactor,
    RecommendationCandidate,
    RecommendationContext,
    RecommendationExplanation,
    RecommendationMetadata,
    RecommendationReason,
    RecommendationResult,
    TeamPreferences,
)
from .snapshot import SNAPSHOT_VERSION, EngineSnapshot, RecommenderSnapshot, TemplateSimilarityMatrix
