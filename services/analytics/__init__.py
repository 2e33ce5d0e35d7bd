from services.analytics.analytics_engine import AnalyticsEngine, round_half_up

__all__ = [
    "AnalyticsEngine",
    "round_half_up",
]
