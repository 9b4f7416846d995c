__version__ = "1.0.0"

from .geo_core.models import (
    RequestContext, ProviderResult, IPRecord, ValidationOutcome,
    SourceAttribution, DataQuality, AggregatedGeoRecord,
    ThreatSignal, ThreatAssessment, RiskLevel, Reputation
)
from .geo_core.exceptions import (
    GeoFuseError, InvalidInputError, ProviderError, GeoLookupError, ConfigurationError
)
from .geo_core.config import ConfigManager, GeoFuseConfig
from .geo_core.utils import is_valid_ip
from .geo_engine.aggregator import GeoAggregator, create_aggregator
from .threat_engine.fusion import ThreatEngine, create_threat_engine

__all__ = [
    "RequestContext", "ProviderResult", "IPRecord", "ValidationOutcome",
    "SourceAttribution", "DataQuality", "AggregatedGeoRecord",
    "ThreatSignal", "ThreatAssessment", "RiskLevel", "Reputation",
    "GeoFuseError", "InvalidInputError", "ProviderError", "GeoLookupError",
    "ConfigurationError", "ConfigManager", "GeoFuseConfig", "is_valid_ip",
    "GeoAggregator", "create_aggregator", "ThreatEngine", "create_threat_engine",
]
