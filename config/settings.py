import os
from typing import Optional, List
from dotenv import load_dotenv
from pathlib import Path

# Load .env from project folder explicitly (works even if CWD differs)
_BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=_BASE_DIR / ".env")


class Settings:
    # Database
    DATABASE_URL: str = os.getenv("RECOMMENDER_DATABASE_URL", "sqlite:///./recommender.db")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8010"))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # CORS
    ALLOWED_ORIGINS: List[str] = os.getenv("ALLOWED_ORIGINS", "*").split(",")

    # Persistence: memory | file | database
    PERSISTENCE_BACKEND: str = os.getenv("PERSISTENCE_BACKEND", "memory").lower()
    SNAPSHOT_PATH: str = os.getenv("SNAPSHOT_PATH", str(_BASE_DIR / "data" / "recommender_snapshot.json"))
    SNAPSHOT_KEY: str = os.getenv("SNAPSHOT_KEY", "workout_recommendation_data")
    PERSISTENCE_FAILURE_THRESHOLD: int = int(os.getenv("PERSISTENCE_FAILURE_THRESHOLD", "5"))
    PERSISTENCE_RECOVERY_SECONDS: int = int(os.getenv("PERSISTENCE_RECOVERY_SECONDS", "60"))

    # Source weights used when merging generator output
    WEIGHT_COLLABORATIVE: float = float(os.getenv("WEIGHT_COLLABORATIVE", "0.40"))
    WEIGHT_CONTENT_BASED: float = float(os.getenv("WEIGHT_CONTENT_BASED", "0.35"))
    WEIGHT_POPULARITY: float = float(os.getenv("WEIGHT_POPULARITY", "0.15"))
    WEIGHT_CONTEXTUAL: float = float(os.getenv("WEIGHT_CONTEXTUAL", "0.10"))

    # Candidate generation
    NEIGHBOR_COUNT: int = int(os.getenv("NEIGHBOR_COUNT", "10"))
    LIKED_THRESHOLD: float = float(os.getenv("LIKED_THRESHOLD", "0.5"))
    CONTENT_SIMILARITY_FLOOR: float = float(os.getenv("CONTENT_SIMILARITY_FLOOR", "0.3"))
    USER_SIMILARITY_THRESHOLD: float = float(os.getenv("USER_SIMILARITY_THRESHOLD", "0.1"))
    MAX_CATALOG_SIZE: int = int(os.getenv("MAX_CATALOG_SIZE", "2000"))

    # Ranking
    DURATION_TOLERANCE: float = float(os.getenv("DURATION_TOLERANCE", "1.2"))
    RECENCY_BOOST: float = float(os.getenv("RECENCY_BOOST", "1.1"))
    RECENCY_WINDOW_DAYS: int = int(os.getenv("RECENCY_WINDOW_DAYS", "7"))
    DEFAULT_LIMIT: int = int(os.getenv("DEFAULT_LIMIT", "10"))
    ALTERNATIVES_COUNT: int = int(os.getenv("ALTERNATIVES_COUNT", "5"))

    # Analytics
    ANALYTICS_CACHE_TTL_MINUTES: int = int(os.getenv("ANALYTICS_CACHE_TTL_MINUTES", "30"))
    TREND_THRESHOLD_PERCENT: float = float(os.getenv("TREND_THRESHOLD_PERCENT", "5"))

    # Background similarity rebuild (0 disables)
    SIMILARITY_REBUILD_INTERVAL_MINUTES: int = int(os.getenv("SIMILARITY_REBUILD_INTERVAL_MINUTES", "0"))

    # Observability
    ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Optional YAML overrides
    CONFIG_PATH: Optional[str] = os.getenv("RECOMMENDER_CONFIG_PATH")


settings = Settings()
