from .models import (
    RequestContext, ProviderResult, IPRecord, ValidationOutcome,
    SourceAttribution, DataQuality, AggregatedGeoRecord,
    ThreatSignal, ThreatAssessment, RiskLevel, Reputation
)
from .exceptions import (
    GeoFuseError, InvalidInputError, ProviderError, GeoLookupError, ConfigurationError
)
from .config import ConfigManager, GeoFuseConfig
from .utils import is_valid_ip, normalize_ip, require_valid_ip, build_ip_record

__all__ = [
    "RequestContext", "ProviderResult", "IPRecord", "ValidationOutcome",
    "SourceAttribution", "DataQuality", "AggregatedGeoRecord",
    "ThreatSignal", "ThreatAssessment", "RiskLevel", "Reputation",
    "GeoFuseError", "InvalidInputError", "ProviderError", "GeoLookupError",
    "ConfigurationError", "ConfigManager", "GeoFuseConfig",
    "is_valid_ip", "normalize_ip", "require_valid_ip", "build_ip_record",
]
