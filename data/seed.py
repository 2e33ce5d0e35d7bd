from datetime import timedelta
from pathlib import Path
from typing import List
import argparse
import sys

# Ensure project root is on sys.path so `from models import ...` works whether this
# script is run inside the container or from the repository root.
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from models import (
    Difficulty,
    InteractionKind,
    PerformanceRecord,
    RawExercise,
    RawTemplate,
    SessionType,
    UsageEvent,
    WorkoutType,
    utcnow,
)
from services.core.recommendation_engine import RecommendationEngine
from services.persistence import build_gateway
from utils.logger import setup_logger

logger = setup_logger(__name__)


def demo_templates() -> List[RawTemplate]:
    return [
        RawTemplate(
            id="tpl-leg-power",
            name="Lower Body Power",
            type=WorkoutType.STRENGTH,
            description="Explosive leg strength for skating acceleration",
            category_ids=["strength", "lower-body"],
            equipment=["barbell", "plyo box"],
            difficulty=Difficulty.INTERMEDIATE,
            duration=45,
            exercises=[
                RawExercise(name="Back Squat", muscle_groups=["quads", "glutes"]),
                RawExercise(name="Box Jump", muscle_groups=["quads", "calves"]),
            ],
            tags=["power"],
        ),
        RawTemplate(
            id="tpl-upper-strength",
            name="Upper Body Strength",
            type=WorkoutType.STRENGTH,
            description="Pressing and pulling strength for board battles",
            category_ids=["strength", "upper-body"],
            equipment=["barbell", "dumbbells"],
            difficulty=Difficulty.ADVANCED,
            duration=50,
            exercises=[
                RawExercise(name="Bench Press", muscle_groups=["chest", "triceps"]),
                RawExercise(name="Pull Up", muscle_groups=["back", "biceps"]),
            ],
        ),
        RawTemplate(
            id="tpl-bike-intervals",
            name="Bike Intervals",
            type=WorkoutType.CONDITIONING,
            description="Repeated sprint intervals matching shift length",
            category_ids=["conditioning"],
            equipment=["bike"],
            difficulty=Difficulty.INTERMEDIATE,
            duration=30,
            exercises=[RawExercise(name="Bike Sprint", muscle_groups=["quads"])],
            tags=["anaerobic"],
        ),
        RawTemplate(
            id="tpl-shuttle-runs",
            name="Shuttle Run Conditioning",
            type=WorkoutType.CONDITIONING,
            description="Change of direction conditioning with cones",
            category_ids=["conditioning", "agility"],
            equipment=["cones"],
            difficulty=Difficulty.BEGINNER,
            duration=25,
            exercises=[RawExercise(name="Shuttle Run", muscle_groups=["quads", "hamstrings"])],
        ),
        RawTemplate(
            id="tpl-stickhandling",
            name="Stickhandling Agility",
            type=WorkoutType.AGILITY,
            description="Puck control through cone patterns",
            category_ids=["skills", "agility"],
            equipment=["pucks", "cones"],
            difficulty=Difficulty.INTERMEDIATE,
            duration=30,
            exercises=[RawExercise(name="Figure Eight Handles", muscle_groups=["forearms"])],
        ),
        RawTemplate(
            id="tpl-circuit",
            name="Full Body Circuit",
            type=WorkoutType.HYBRID,
            description="Mixed strength and conditioning circuit",
            category_ids=["strength", "conditioning"],
            equipment=["kettlebell"],
            exercises=[
                RawExercise(name="Kettlebell Swing", muscle_groups=["glutes", "hamstrings"]),
                RawExercise(name="Burpee", muscle_groups=["chest", "quads"]),
            ],
        ),
    ]


def seed_engine(engine: RecommendationEngine, players: int = 4) -> dict:
    """Load the demo catalog plus a few weeks of synthetic team activity."""
    templates = demo_templates()
    engine.load_raw_templates(templates)

    now = utcnow()
    ratings = [9, 8, 6, 7, 5, 8]

    usage_count = 0
    for player in range(players):
        user_id = f"player-{player + 1}"
        for index, template in enumerate(templates):
            if (index + player) % 3 == 0:
                continue

            rating = max(1, min(10, ratings[index] - player % 2))
            engine.record_interaction(user_id, template.id, InteractionKind.COMPLETED)
            engine.record_interaction(user_id, template.id, InteractionKind.RATED, rating)

            when = now - timedelta(days=3 + 5 * index + player)
            session_id = f"session-{player}-{index}"
            engine.track_usage(UsageEvent(
                template_id=template.id,
                user_id=user_id,
                team_id="demo-team",
                session_id=session_id,
                timestamp=when,
                session_type=SessionType.SCHEDULED,
            ))
            engine.record_performance(PerformanceRecord(
                template_id=template.id,
                session_id=session_id,
                completion_rate=0.75 + 0.05 * (rating % 4),
                satisfaction=rating,
                session_duration=template.duration or 60,
                timestamp=when,
            ))
            usage_count += 1

    engine.rebuild_similarities()

    summary = {"templates": len(templates), "players": players, "sessions": usage_count}
    logger.info("Demo data seeded", extra=summary)
    return summary


def seed(backend: str, snapshot_path: str):
    gateway = build_gateway(backend, snapshot_path=snapshot_path, key=settings.SNAPSHOT_KEY)
    engine = RecommendationEngine.from_settings(settings, gateway=gateway)
    try:
        seed_engine(engine)
        engine.flush_persistence()
    finally:
        engine.shutdown()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo workout catalog and team activity")
    parser.add_argument("--backend", default="file", choices=["file", "database"])
    parser.add_argument("--snapshot-path", default=settings.SNAPSHOT_PATH)
    args = parser.parse_args()

    seed(args.backend, args.snapshot_path)
