import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, List
import yaml

from utils.logger import setup_logger

logger = setup_logger(__name__)

PERSISTENCE_BACKENDS = ("memory", "file", "database")


class ConfigurationError(Exception):
    pass


class ConfigLoader:
    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            base_dir = Path(__file__).resolve().parent
            config_path = base_dir / "config.yaml"

        self.config_path = Path(config_path)
        self._config: Optional[Dict[str, Any]] = None
        self._last_loaded: Optional[float] = None

    def load(self, force_reload: bool = False) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise ConfigurationError(f"config file not found: {self.config_path}")

        current_mtime = self.config_path.stat().st_mtime

        if not force_reload and self._config is not None and self._last_loaded == current_mtime:
            return self._config

        logger.info(
            "Loading configuration from file",
            extra={"config_path": str(self.config_path)}
        )

        with open(self.config_path, "r") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raise ConfigurationError("config file is empty")

        self._config = self._interpolate_env_vars(raw_config)
        self._last_loaded = current_mtime

        logger.info("Configuration loaded successfully")

        return self._config

    def _interpolate_env_vars(self, config: Any) -> Any:
        if isinstance(config, dict):
            return {
                key: self._interpolate_env_vars(value)
                for key, value in config.items()
            }
        elif isinstance(config, list):
            return [self._interpolate_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._replace_env_vars_in_string(config)
        else:
            return config

    def _replace_env_vars_in_string(self, value: str) -> Any:
        pattern = re.compile(r'\$\{([^}]+)\}')

        def replacer(match):
            env_var = match.group(1)
            env_value = os.getenv(env_var)

            if env_value is None:
                logger.warning(
                    f"Environment variable not found: {env_var}",
                    extra={"env_var": env_var}
                )
                return match.group(0)

            return env_value

        replaced = pattern.sub(replacer, value)
        if replaced != value:
            # interpolated scalars come back as YAML so numbers stay numbers
            return yaml.safe_load(replaced)
        return replaced

    def get(self, path: str, default: Any = None) -> Any:
        if self._config is None:
            self.load()

        keys = path.split('.')
        current = self._config

        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current


class ConfigValidator:
    @staticmethod
    def validate_server_config(config: Dict[str, Any]) -> List[str]:
        errors = []

        server = config.get('server', {})

        port = server.get('port')
        if port is not None and (not isinstance(port, int) or port < 1 or port > 65535):
            errors.append(f"invalid port: {port}")

        return errors

    @staticmethod
    def validate_recommendation_config(config: Dict[str, Any]) -> List[str]:
        errors = []

        rec = config.get('recommendation', {})

        weights = rec.get('source_weights')
        if weights is not None:
            if not isinstance(weights, dict):
                errors.append("source_weights must be a mapping")
            else:
                for name in ['collaborative', 'content_based', 'popularity', 'contextual']:
                    if name not in weights:
                        errors.append(f"missing source weight: {name}")
                total = sum(v for v in weights.values() if isinstance(v, (int, float)))
                if abs(total - 1.0) > 0.01:
                    errors.append(f"source weights must sum to 1.0, got {round(total, 3)}")

        for key in ['liked_threshold', 'content_similarity_floor', 'user_similarity_threshold']:
            value = rec.get(key)
            if value is not None and (not isinstance(value, (int, float)) or value < 0 or value > 1):
                errors.append(f"invalid {key}: {value} (must be between 0 and 1)")

        neighbor_count = rec.get('neighbor_count')
        if neighbor_count is not None and (not isinstance(neighbor_count, int) or neighbor_count < 1):
            errors.append(f"invalid neighbor_count: {neighbor_count}")

        max_catalog = rec.get('max_catalog_size')
        if max_catalog is not None and (not isinstance(max_catalog, int) or max_catalog < 1):
            errors.append(f"invalid max_catalog_size: {max_catalog}")

        return errors

    @staticmethod
    def validate_analytics_config(config: Dict[str, Any]) -> List[str]:
        errors = []

        analytics = config.get('analytics', {})

        ttl = analytics.get('cache_ttl_minutes')
        if ttl is not None and (not isinstance(ttl, int) or ttl < 1):
            errors.append(f"invalid cache_ttl_minutes: {ttl}")

        threshold = analytics.get('trend_threshold_percent')
        if threshold is not None and (not isinstance(threshold, (int, float)) or threshold < 0):
            errors.append(f"invalid trend_threshold_percent: {threshold}")

        return errors

    @staticmethod
    def validate_persistence_config(config: Dict[str, Any]) -> List[str]:
        errors = []

        persistence = config.get('persistence', {})

        backend = persistence.get('backend')
        if backend is not None and backend not in PERSISTENCE_BACKENDS:
            errors.append(
                f"invalid persistence backend: {backend} (must be one of {', '.join(PERSISTENCE_BACKENDS)})"
            )

        if backend == "file" and not persistence.get('snapshot_path'):
            errors.append("file persistence requires snapshot_path")

        return errors

    @staticmethod
    def validate(config: Dict[str, Any]) -> List[str]:
        all_errors = []

        all_errors.extend(ConfigValidator.validate_server_config(config))
        all_errors.extend(ConfigValidator.validate_recommendation_config(config))
        all_errors.extend(ConfigValidator.validate_analytics_config(config))
        all_errors.extend(ConfigValidator.validate_persistence_config(config))

        return all_errors


def apply_to_settings(config: Dict[str, Any], target: Any) -> None:
    """Copy validated YAML values onto a Settings instance."""
    rec = config.get('recommendation', {})
    weights = rec.get('source_weights') or {}
    mapping = {
        "WEIGHT_COLLABORATIVE": weights.get('collaborative'),
        "WEIGHT_CONTENT_BASED": weights.get('content_based'),
        "WEIGHT_POPULARITY": weights.get('popularity'),
        "WEIGHT_CONTEXTUAL": weights.get('contextual'),
        "NEIGHBOR_COUNT": rec.get('neighbor_count'),
        "LIKED_THRESHOLD": rec.get('liked_threshold'),
        "CONTENT_SIMILARITY_FLOOR": rec.get('content_similarity_floor'),
        "USER_SIMILARITY_THRESHOLD": rec.get('user_similarity_threshold'),
        "MAX_CATALOG_SIZE": rec.get('max_catalog_size'),
        "ANALYTICS_CACHE_TTL_MINUTES": config.get('analytics', {}).get('cache_ttl_minutes'),
        "TREND_THRESHOLD_PERCENT": config.get('analytics', {}).get('trend_threshold_percent'),
        "PERSISTENCE_BACKEND": config.get('persistence', {}).get('backend'),
        "SNAPSHOT_PATH": config.get('persistence', {}).get('snapshot_path'),
        "SIMILARITY_REBUILD_INTERVAL_MINUTES": config.get('maintenance', {}).get('rebuild_interval_minutes'),
        "ENABLE_PROMETHEUS": config.get('observability', {}).get('enable_prometheus'),
        "LOG_LEVEL": config.get('observability', {}).get('log_level'),
    }
    for attr, value in mapping.items():
        if value is not None:
            setattr(target, attr, value)


config_loader: Optional[ConfigLoader] = None


def init_config_loader(config_path: Optional[Path] = None) -> ConfigLoader:
    global config_loader
    config_loader = ConfigLoader(config_path=config_path)

    config = config_loader.load()

    validation_errors = ConfigValidator.validate(config)
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {err}" for err in validation_errors)
        logger.error(error_msg)
        raise ConfigurationError(error_msg)

    logger.info("Configuration validated successfully")

    return config_loader
