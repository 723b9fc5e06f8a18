"""
Feature Store Module
Upstream map-data sources consumed by the sketchiness analysis
"""
from .base import FeatureStore, RawFeature
from .memory import InMemoryFeatureStore
from .geofile import GeoFileFeatureStore, feature_store_from_settings

__all__ = [
    "FeatureStore",
    "RawFeature",
    "InMemoryFeatureStore",
    "GeoFileFeatureStore",
    "feature_store_from_settings",
]
