#!/usr/bin/env python
"""
Load a template catalog from JSON, rebuild both similarity matrices and write
the resulting snapshot through the configured persistence backend.

The catalog file holds either feature vectors or raw template payloads
(use --raw for the latter). Event logs already stored in the snapshot are kept.
"""
import argparse
import json
import sys
import time
from typing import List
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import TypeAdapter

from config import settings
from models import RawTemplate, TemplateFeatureVector
from services.core.recommendation_engine import RecommendationEngine
from services.persistence import build_gateway
from utils.logger import setup_logger

logger = setup_logger(__name__)


def build_similarity_matrix(catalog_path: Path, raw: bool, backend: str, snapshot_path: str) -> dict:
    start_time = time.time()

    payload = json.loads(catalog_path.read_text(encoding="utf-8"))

    gateway = build_gateway(backend, snapshot_path=snapshot_path, key=settings.SNAPSHOT_KEY)
    engine = RecommendationEngine.from_settings(settings, gateway=gateway)

    try:
        warm = engine.warm_start()
        print(f"\n[INFO] Existing snapshot {'loaded' if warm else 'not found, starting cold'}")

        if raw:
            templates = TypeAdapter(List[RawTemplate]).validate_python(payload)
            print(f"[INFO] Extracting features from {len(templates):,} raw templates")
            count = engine.load_raw_templates(templates)
        else:
            features = TypeAdapter(List[TemplateFeatureVector]).validate_python(payload)
            print(f"[INFO] Loading {len(features):,} feature vectors")
            count = engine.load_catalog(features)

        result = engine.rebuild_similarities()
        engine.flush_persistence()
    finally:
        engine.shutdown()

    duration = time.time() - start_time
    summary = {"templates": count, "user_edges": result["user_edges"], "duration_seconds": round(duration, 2)}

    logger.info("Similarity matrices built", extra=summary)

    print(f"[SUCCESS] Indexed {count:,} templates, {result['user_edges']:,} user similarity edges")
    print(f"[INFO] Snapshot written via {backend} backend in {duration:.2f}s\n")

    return summary


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild template and user similarity matrices")
    parser.add_argument("catalog", type=Path, help="JSON file with the template catalog")
    parser.add_argument("--raw", action="store_true", help="Catalog holds raw template payloads")
    parser.add_argument("--backend", default="file", choices=["file", "database"])
    parser.add_argument("--snapshot-path", default=settings.SNAPSHOT_PATH)
    args = parser.parse_args()

    try:
        build_similarity_matrix(args.catalog, args.raw, args.backend, args.snapshot_path)
    except Exception as e:
        logger.error("Similarity matrix build failed", extra={"error": str(e)}, exc_info=True)
        print(f"\n[ERROR] {e}\n")
        sys.exit(1)
