"""
Multi-Source Geolocation Aggregation

Fans a lookup out to every configured provider concurrently, scores each
answer, and merges the answers field by field into one record. A field is
only overwritten by a contributor whose ``priority x validation score`` is
strictly higher than the weight of the value already holding it; providers
are visited in registry order so the outcome never depends on which
provider answered first.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..geo_core.config import GeoFuseConfig
from ..geo_core.constants import COMPLETENESS_FIELDS, CONSISTENCY_BOOST, GEO_FIELDS, QUALITY_PRECISION
from ..geo_core.exceptions import GeoLookupError, ProviderError
from ..geo_core.models import (
    AggregatedGeoRecord, DataQuality, IPRecord, ProviderResult, RequestContext,
    SourceAttribution, utc_timestamp,
)
from ..geo_core.utils import build_ip_record, require_valid_ip
from ..threat_engine.fusion import ThreatEngine, create_threat_engine
from .enrichment import (
    currency_from_country, flag_from_country, languages_from_country, timezone_from_longitude,
)
from .providers import GeoProvider, ProviderRegistry, create_default_registry
from .validation import sanitize_geo_value, validate_geo_data

logger = logging.getLogger(__name__)

# The queried address is authoritative; providers never overwrite it
MERGED_FIELDS = tuple(f for f in GEO_FIELDS if f != 'ip')


class GeoAggregator:
    """Reconciles several geolocation providers into one authoritative record"""

    def __init__(self, config: Optional[GeoFuseConfig] = None,
                 registry: Optional[ProviderRegistry] = None,
                 threat_engine: Optional[ThreatEngine] = None):
        self.config = config or GeoFuseConfig()
        self.registry = registry if registry is not None else create_default_registry(self.config)
        self._threat_engine = threat_engine

    @property
    def threat_engine(self) -> ThreatEngine:
        if self._threat_engine is None:
            self._threat_engine = create_threat_engine(self.config)
        return self._threat_engine

    def active_providers(self) -> List[GeoProvider]:
        return self.registry.active(self.config.providers)

    # ===========================================================================
    # GEOLOCATION
    # ===========================================================================

    async def get_geo_info(self, ip: str, context: Optional[RequestContext] = None,
                           include_threat: bool = False) -> AggregatedGeoRecord:
        """Aggregated geolocation for ``ip``.

        Raises InvalidInputError for a malformed address before any provider
        is contacted, and GeoLookupError for unexpected internal failures.
        Provider failures never raise; they are listed in ``failed_sources``.
        """
        ip = require_valid_ip(ip)

        tasks = [self._aggregate(ip, context)]
        if include_threat:
            tasks.append(self._assess_threat(ip, context))
        results = await asyncio.gather(*tasks, return_exceptions=True)

        geo_result = results[0]
        if isinstance(geo_result, BaseException):
            if not isinstance(geo_result, Exception):
                raise geo_result
            logger.error(f"Geolocation lookup failed for {ip}: {geo_result}")
            raise GeoLookupError(ip=ip) from geo_result

        if include_threat:
            geo_result.threat = results[1]
        return geo_result

    async def _assess_threat(self, ip: str, context: Optional[RequestContext]) -> Dict[str, Any]:
        try:
            assessment = await self.threat_engine.assess(ip, context)
        except Exception as e:
            logger.warning(f"Threat assessment unavailable for {ip}: {e}")
            return {'error': 'unavailable'}
        return assessment.to_dict()

    async def _query(self, provider: GeoProvider, method: str, ip: str,
                     context: Optional[RequestContext]) -> Any:
        timeout = self.config.provider_timeout
        try:
            return await asyncio.wait_for(getattr(provider, method)(ip, context), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{provider.name} did not answer within {timeout}s",
                                provider.name, ProviderError.TIMEOUT) from e

    async def _fan_out(self, method: str, ip: str,
                       context: Optional[RequestContext]) -> List[Tuple[GeoProvider, Any]]:
        providers = self.active_providers()
        results = await asyncio.gather(
            *(self._query(p, method, ip, context) for p in providers),
            return_exceptions=True,
        )
        return list(zip(providers, results))

    async def _aggregate(self, ip: str, context: Optional[RequestContext]) -> AggregatedGeoRecord:
        record = AggregatedGeoRecord(ip=ip, timestamp=utc_timestamp())
        field_weights: Dict[str, float] = {}
        confidence_weights: Dict[str, float] = {}
        scores = []

        for provider, result in await self._fan_out('get_geo_info', ip, context):
            if isinstance(result, BaseException):
                record.failed_sources.append(self._failure(provider, result))
                continue
            if result is None:
                logger.debug(f"{provider.name} has no opinion on {ip}")
                continue

            outcome = validate_geo_data(result)
            weight = provider.priority * outcome.score
            contributed = self._merge_fields(record, result, weight, field_weights)
            self._merge_confidence(record, result, provider, weight, confidence_weights)

            record.sources.append(SourceAttribution(
                provider=provider.name,
                priority=provider.priority,
                validation_score=outcome.score,
                fields=contributed,
                issues=outcome.issues,
            ))
            scores.append(outcome.score)

        if not record.sources:
            logger.warning(f"No geolocation provider returned data for {ip}")

        record.data_quality = self._data_quality(record, scores)
        self._enrich(record)

        logger.debug(f"Aggregated {ip} from {[s.provider for s in record.sources]} "
                     f"(completeness {record.data_quality.completeness})")
        return record

    def _failure(self, provider: GeoProvider, error: BaseException) -> SourceAttribution:
        kind = error.kind if isinstance(error, ProviderError) else 'internal'
        logger.warning(f"Provider {provider.name} failed ({kind}): {error}")
        return SourceAttribution(
            provider=provider.name,
            priority=provider.priority,
            success=False,
            error=kind,
        )

    @staticmethod
    def _merge_fields(record: AggregatedGeoRecord, result: ProviderResult,
                      weight: float, field_weights: Dict[str, float]) -> List[str]:
        contributed = []
        for name in MERGED_FIELDS:
            value = sanitize_geo_value(name, result.get(name))
            if value is None:
                continue
            if name in field_weights and weight <= field_weights[name]:
                continue
            setattr(record, name, value)
            field_weights[name] = weight
            contributed.append(name)
        return contributed

    @staticmethod
    def _merge_confidence(record: AggregatedGeoRecord, result: ProviderResult, provider: GeoProvider,
                          weight: float, confidence_weights: Dict[str, float]):
        for name, value in result.confidence.items():
            if value is None:
                continue
            if name in confidence_weights and weight <= confidence_weights[name]:
                continue
            record.confidence[name] = {'value': value, 'source': provider.name, 'priority': provider.priority}
            confidence_weights[name] = weight

    @staticmethod
    def _data_quality(record: AggregatedGeoRecord, scores: List[float]) -> DataQuality:
        if not scores:
            return DataQuality()

        completeness = len(record.filled_fields(COMPLETENESS_FIELDS)) / len(COMPLETENESS_FIELDS)
        accuracy = sum(scores) / len(scores)
        consistency = min(1.0, accuracy * CONSISTENCY_BOOST) if len(scores) > 1 else accuracy
        overall = (completeness + consistency + accuracy) / 3

        return DataQuality(
            completeness=round(completeness, QUALITY_PRECISION),
            consistency=round(consistency, QUALITY_PRECISION),
            accuracy=round(accuracy, QUALITY_PRECISION),
            overall=round(overall, QUALITY_PRECISION),
        )

    @staticmethod
    def _enrich(record: AggregatedGeoRecord):
        # Derived values never replace provider data
        if record.timezone is None and record.longitude is not None:
            record.timezone = timezone_from_longitude(record.longitude)

        code = record.country_code
        record.flag = flag_from_country(code)
        record.currency = currency_from_country(code)
        record.languages = languages_from_country(code)

    # ===========================================================================
    # IP INFORMATION
    # ===========================================================================

    async def get_ip_info(self, ip: str, context: Optional[RequestContext] = None) -> IPRecord:
        """Merged basic IP characteristics plus provider extras.

        Address characteristics are always derived from the address itself;
        provider-specific extras are taken from the highest-priority
        provider that reports them.
        """
        ip = require_valid_ip(ip)
        merged = build_ip_record(ip)
        merged.timestamp = utc_timestamp()

        for provider, result in await self._fan_out('get_ip_info', ip, context):
            if isinstance(result, BaseException):
                self._failure(provider, result)
                continue
            if result is None:
                continue

            merged.sources.append({'provider': provider.name, 'priority': provider.priority})
            for key, value in result.extras.items():
                if value is not None and key not in merged.extras:
                    merged.extras[key] = value

        if not merged.sources:
            logger.warning(f"No provider returned IP information for {ip}")
        return merged


def create_aggregator(config: Optional[GeoFuseConfig] = None) -> GeoAggregator:
    """Create an aggregator with the default provider registry"""
    return GeoAggregator(config or GeoFuseConfig())
