#!/usr/bin/env python
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config.config_loader import ConfigLoader, ConfigValidator
from utils.logger import setup_logger

logger = setup_logger(__name__)


def validate_configuration(config_path: Path = None) -> bool:
    print("\n" + "="*80)
    print(" Workout Recommender Configuration Validator")
    print("="*80 + "\n")

    try:
        loader = ConfigLoader(config_path=config_path)
        print(f"[INFO] Loading configuration from {loader.config_path}...")
        config = loader.load()

        print("[INFO] Configuration loaded successfully\n")

        print("[INFO] Running validation checks...")
        errors = ConfigValidator.validate(config)

        if errors:
            print(f"\n[ERROR] Configuration validation failed with {len(errors)} error(s):\n")
            for error in errors:
                print(f"  - {error}")
            print()
            return False

        print("[INFO] All validation checks passed\n")

        recommendation = config.get('recommendation', {})
        weights = recommendation.get('source_weights', {})

        print("Configuration Summary:")
        print("-" * 80)
        print(f"  Server:            {config.get('server', {}).get('host')}:{config.get('server', {}).get('port')}")
        print(f"  Persistence:       {config.get('persistence', {}).get('backend')}")
        print(f"  Source weights:    {', '.join(f'{name}={value}' for name, value in weights.items())}")
        print(f"  Neighbors:         {recommendation.get('neighbor_count')}")
        print(f"  Analytics TTL:     {config.get('analytics', {}).get('cache_ttl_minutes')} minutes")
        print(f"  Rebuild interval:  {config.get('maintenance', {}).get('rebuild_interval_minutes')} minutes")
        print(f"  Prometheus:        {config.get('observability', {}).get('enable_prometheus')}")
        print(f"  Log Level:         {config.get('observability', {}).get('log_level')}")
        print("-" * 80 + "\n")

        return True

    except Exception as e:
        print(f"\n[ERROR] Failed to validate configuration: {str(e)}\n")
        logger.error("Configuration validation failed", exc_info=True)
        return False


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    success = validate_configuration(path)
    sys.exit(0 if success else 1)
