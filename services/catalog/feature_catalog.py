import threading
from typing import Dict, Iterable, List, Optional

from models import TemplateFeatureVector
from utils.logger import setup_logger

logger = setup_logger(__name__)


class FeatureCatalog:
    """Current set of template feature vectors, replaced wholesale on refresh."""

    def __init__(self, features: Optional[Iterable[TemplateFeatureVector]] = None):
        self._lock = threading.RLock()
        self._features: Dict[str, TemplateFeatureVector] = {}
        self.version = 0

        if features is not None:
            self.replace(features)

    def replace(self, features: Iterable[TemplateFeatureVector]) -> int:
        incoming: Dict[str, TemplateFeatureVector] = {}
        for feature in features:
            if feature.template_id in incoming:
                logger.warning(
                    "Duplicate template in catalog refresh, keeping last",
                    extra={"template_id": feature.template_id}
                )
            incoming[feature.template_id] = feature

        with self._lock:
            self._features = incoming
            self.version += 1

        logger.info(
            "Feature catalog refreshed",
            extra={"templates": len(incoming), "catalog_version": self.version}
        )
        return len(incoming)

    def get(self, template_id: str) -> Optional[TemplateFeatureVector]:
        return self._features.get(template_id)

    def ids(self, limit: Optional[int] = None) -> List[str]:
        ids = list(self._features.keys())
        if limit is not None:
            return ids[:limit]
        return ids

    def values(self) -> List[TemplateFeatureVector]:
        return list(self._features.values())

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._features

    def __len__(self) -> int:
        return len(self._features)


class UnknownTemplateError(LookupError):
    def __init__(self, template_id: str):
        super().__init__(f"template not found: {template_id}")
        self.template_id = template_id
