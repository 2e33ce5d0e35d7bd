#!/usr/bin/env python
"""Export per-template analytics from a persisted snapshot as JSON files."""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from services.core.recommendation_engine import RecommendationEngine
from services.persistence import build_gateway
from utils.logger import setup_logger

logger = setup_logger(__name__)


def export_analytics(output_dir: Path, template_ids, backend: str, snapshot_path: str) -> int:
    gateway = build_gateway(backend, snapshot_path=snapshot_path, key=settings.SNAPSHOT_KEY)
    engine = RecommendationEngine.from_settings(settings, gateway=gateway)

    try:
        if not engine.warm_start():
            print("\n[ERROR] No usable snapshot found; run data/seed.py or scripts/build_similarity_matrix.py first\n")
            return 0

        targets = template_ids or engine.catalog.ids()
        output_dir.mkdir(parents=True, exist_ok=True)

        exported = 0
        for template_id in targets:
            payload = engine.analytics.export_analytics(template_id)
            (output_dir / f"{template_id}.json").write_text(payload, encoding="utf-8")
            exported += 1

        print(f"\n{'Rank':<6}{'Template':<32}{'Effectiveness':>14}")
        print("-" * 52)
        for ranking in engine.get_rankings(targets):
            print(f"{ranking.rank:<6}{ranking.template_id:<32}{ranking.score:>13}%")
        print()
    finally:
        engine.shutdown()

    logger.info(
        "Analytics exported",
        extra={"templates": exported, "output_dir": str(output_dir)}
    )
    return exported


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export template analytics to JSON")
    parser.add_argument("--output-dir", type=Path, default=Path("analytics_export"))
    parser.add_argument("--template-id", action="append", dest="template_ids", help="Repeatable; defaults to whole catalog")
    parser.add_argument("--backend", default="file", choices=["file", "database"])
    parser.add_argument("--snapshot-path", default=settings.SNAPSHOT_PATH)
    args = parser.parse_args()

    count = export_analytics(args.output_dir, args.template_ids, args.backend, args.snapshot_path)
    print(f"[INFO] Exported {count} template(s) to {args.output_dir}\n")
    sys.exit(0 if count else 1)
