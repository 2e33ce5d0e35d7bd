from services.infrastructure.scheduled_rebuild import ScheduledSimilarityRebuild

__all__ = [
    "ScheduledSimilarityRebuild",
]
