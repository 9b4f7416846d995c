"""GeoFuse Core Models - Data models shared by the geolocation and threat engines"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, List, Any, Iterable

from .constants import GEO_FIELDS, CAMEL_CASE_FIELDS


def utc_timestamp() -> str:
    """ISO-8601 timestamp in UTC"""
    return datetime.now(timezone.utc).isoformat()


def camel_case(field_name: str) -> str:
    return CAMEL_CASE_FIELDS.get(field_name, field_name)


# ===============================================================================
# CORE ENUMERATIONS
# ===============================================================================

class RiskLevel(Enum):
    """Fused risk categories"""
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Reputation(Enum):
    """IP reputation verdicts, ordered by precedence"""
    UNKNOWN = "unknown"
    GOOD = "good"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"

    @property
    def rank(self) -> int:
        return _REPUTATION_RANK[self]


_REPUTATION_RANK = {
    Reputation.UNKNOWN: 0,
    Reputation.GOOD: 1,
    Reputation.SUSPICIOUS: 2,
    Reputation.MALICIOUS: 3,
}


# ===============================================================================
# REQUEST CONTEXT
# ===============================================================================

@dataclass
class RequestContext:
    """The originating request: headers, path and edge-network metadata"""
    headers: Dict[str, str] = field(default_factory=dict)
    path: str = ""
    edge: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Header names are case-insensitive
        self.headers = {
            str(name).strip().lower(): str(value)
            for name, value in (self.headers or {}).items()
            if value is not None
        }
        self.edge = dict(self.edge or {})
        self.path = self.path or ""

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value; empty values count as absent"""
        value = self.headers.get(name.lower())
        return value if value else default

    def has_header(self, name: str) -> bool:
        return bool(self.headers.get(name.lower()))

    @property
    def user_agent(self) -> str:
        return self.header('user-agent', '')

    @classmethod
    def from_header_lines(cls, lines: Iterable[str], path: str = "") -> 'RequestContext':
        """Build a context from 'Name: value' strings"""
        headers = {}
        for line in lines:
            name, sep, value = line.partition(':')
            if not sep or not name.strip():
                raise ValueError(f"Malformed header line: {line!r}")
            headers[name.strip()] = value.strip()
        return cls(headers=headers, path=path)


# ===============================================================================
# PROVIDER DATA MODELS
# ===============================================================================

@dataclass
class ProviderResult:
    """One adapter's raw geolocation answer for one IP"""
    provider: str
    ip: Any = None
    city: Any = None
    region: Any = None
    region_code: Any = None
    country: Any = None
    country_code: Any = None
    continent: Any = None
    continent_code: Any = None
    latitude: Any = None
    longitude: Any = None
    accuracy: Any = None
    timezone: Any = None
    postal_code: Any = None
    asn: Any = None
    as_organization: Any = None
    isp: Any = None
    organization: Any = None
    domain: Any = None
    usage_type: Any = None
    confidence: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    def get(self, field_name: str) -> Any:
        return getattr(self, field_name, None)

    def to_dict(self) -> Dict[str, Any]:
        data = {camel_case(name): self.get(name) for name in GEO_FIELDS}
        data['provider'] = self.provider
        data['confidence'] = dict(self.confidence)
        data.update(self.extras)
        return data


@dataclass
class IPRecord:
    """Basic IP characteristics reported by one provider (or merged)"""
    ip: str
    version: Optional[int] = None
    type: Optional[str] = None
    is_private: bool = False
    is_loopback: bool = False
    is_multicast: bool = False
    provider: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    sources: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'ip': self.ip,
            'version': self.version,
            'type': self.type,
            'isPrivate': self.is_private,
            'isLoopback': self.is_loopback,
            'isMulticast': self.is_multicast,
        }
        if self.provider:
            data['provider'] = self.provider
        data.update(self.extras)
        if self.sources:
            data['sources'] = list(self.sources)
        if self.timestamp:
            data['timestamp'] = self.timestamp
        return data


@dataclass
class ValidationOutcome:
    """Quality judgement of a ProviderResult"""
    score: float = 1.0
    issues: List[str] = field(default_factory=list)
    is_valid: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {'score': self.score, 'issues': list(self.issues), 'isValid': self.is_valid}


@dataclass
class SourceAttribution:
    """Which provider contributed what to an aggregated record"""
    provider: str
    priority: int
    validation_score: Optional[float] = None
    fields: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {
                'provider': self.provider,
                'priority': self.priority,
                'success': False,
                'error': self.error,
            }
        return {
            'provider': self.provider,
            'priority': self.priority,
            'validationScore': self.validation_score,
            'fields': [camel_case(name) for name in self.fields],
            'issues': list(self.issues),
        }


@dataclass
class DataQuality:
    """Completeness/consistency/accuracy metrics of a merged record"""
    completeness: float = 0.0
    consistency: float = 0.0
    accuracy: float = 0.0
    overall: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'completeness': self.completeness,
            'consistency': self.consistency,
            'accuracy': self.accuracy,
            'overall': self.overall,
        }


@dataclass
class AggregatedGeoRecord:
    """Final reconciled geolocation record"""
    ip: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    region_code: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    continent: Optional[str] = None
    continent_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[int] = None
    timezone: Optional[str] = None
    postal_code: Optional[str] = None
    asn: Optional[int] = None
    as_organization: Optional[str] = None
    isp: Optional[str] = None
    organization: Optional[str] = None
    domain: Optional[str] = None
    usage_type: Optional[str] = None

    # Derived enrichment
    flag: Optional[str] = None
    currency: Optional[Dict[str, str]] = None
    languages: List[str] = field(default_factory=list)

    confidence: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    sources: List[SourceAttribution] = field(default_factory=list)
    failed_sources: List[SourceAttribution] = field(default_factory=list)
    data_quality: DataQuality = field(default_factory=DataQuality)
    threat: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None

    def get(self, field_name: str) -> Any:
        return getattr(self, field_name, None)

    def filled_fields(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if has_value(self.get(name))]

    def to_dict(self) -> Dict[str, Any]:
        data = {camel_case(name): self.get(name) for name in GEO_FIELDS}
        data.update({
            'flag': self.flag,
            'currency': dict(self.currency) if self.currency else None,
            'languages': list(self.languages),
            'confidence': {k: dict(v) for k, v in self.confidence.items()},
            'sources': [s.to_dict() for s in self.sources],
            'failedSources': [s.to_dict() for s in self.failed_sources],
            'dataQuality': self.data_quality.to_dict(),
            'timestamp': self.timestamp,
        })
        if self.threat is not None:
            data['threat'] = self.threat
        return data


# ===============================================================================
# THREAT DATA MODELS
# ===============================================================================

@dataclass
class ThreatSignal:
    """Output of one heuristic check"""
    detected: bool = False
    risk_score: float = 0
    indicators: List[str] = field(default_factory=list)
    source: Optional[str] = None
    reputation: Optional[Reputation] = None
    sources: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def __post_init__(self):
        if self.risk_score < 0:
            self.risk_score = 0

    @classmethod
    def neutral(cls, source: Optional[str] = None, error: Optional[str] = None) -> 'ThreatSignal':
        """Not-detected signal substituted for a failed check"""
        return cls(detected=False, risk_score=0, indicators=[], source=source, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'detected': self.detected,
            'riskScore': self.risk_score,
            'indicators': list(self.indicators),
            'source': self.source,
        }
        if self.reputation is not None:
            data['reputation'] = self.reputation.value
            data['sources'] = list(self.sources)
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class ThreatAssessment:
    """Fused risk verdict for one IP"""
    ip: str
    risk_score: float = 0
    risk_level: RiskLevel = RiskLevel.MINIMAL
    is_vpn: bool = False
    is_proxy: bool = False
    is_tor: bool = False
    is_bot: bool = False
    is_malicious: bool = False
    reputation: Reputation = Reputation.UNKNOWN
    threats: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_timestamp)
    error: Optional[str] = None

    @classmethod
    def degraded(cls, ip: str, error: str) -> 'ThreatAssessment':
        """Safe default returned when the assessment itself fails"""
        return cls(ip=ip, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'ip': self.ip,
            'riskScore': self.risk_score,
            'riskLevel': self.risk_level.value,
            'isVPN': self.is_vpn,
            'isProxy': self.is_proxy,
            'isTor': self.is_tor,
            'isBot': self.is_bot,
            'isMalicious': self.is_malicious,
            'reputation': self.reputation.value,
            'threats': list(self.threats),
            'sources': list(self.sources),
            'timestamp': self.timestamp,
        }
        if self.error:
            data['error'] = self.error
        return data


def has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True
