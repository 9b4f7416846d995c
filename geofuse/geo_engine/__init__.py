"""Geolocation Engine Package

Provider adapters, result validation, field-level merging and derived
enrichment for IP geolocation lookups.
"""

from .aggregator import GeoAggregator, create_aggregator
from .providers import (
    GeoProvider, ProviderRegistry, EdgeHeadersProvider, MaxMindProvider,
    IPInfoProvider, create_default_registry
)
from .validation import validate_geo_data, sanitize_geo_value

__all__ = [
    'GeoAggregator',
    'create_aggregator',
    'GeoProvider',
    'ProviderRegistry',
    'EdgeHeadersProvider',
    'MaxMindProvider',
    'IPInfoProvider',
    'create_default_registry',
    'validate_geo_data',
    'sanitize_geo_value',
]
