from services.catalog.feature_catalog import FeatureCatalog, UnknownTemplateError
from services.catalog.feature_extractor import extract_features, extract_all

__all__ = [
    "FeatureCatalog",
    "UnknownTemplateError",
    "extract_features",
    "extract_all",
]
