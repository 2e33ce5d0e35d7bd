from services.candidates.base import CandidateGenerator
from services.candidates.collaborative import CollaborativeGenerator
from services.candidates.content_based import ContentBasedGenerator
from services.candidates.contextual import ContextualGenerator
from services.candidates.popularity import PopularityGenerator

__all__ = [
    "CandidateGenerator",
    "CollaborativeGenerator",
    "ContentBasedGenerator",
    "ContextualGenerator",
    "PopularityGenerator",
]
