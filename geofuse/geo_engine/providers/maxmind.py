"""MaxMind GeoIP2 web service provider"""

import logging
from typing import Any, Dict, Optional

import aiohttp

from ...geo_core.constants import DEFAULT_PROVIDER_TIMEOUT, MAXMIND_DEFAULT_URL, PRIORITY_MAXMIND
from ...geo_core.exceptions import ProviderError
from ...geo_core.http import fetch_json
from ...geo_core.models import IPRecord, ProviderResult, RequestContext
from ...geo_core.utils import build_ip_record
from ..enrichment import flag_from_country

logger = logging.getLogger(__name__)

NAME_LOCALES = ('en', 'zh-CN')


def _localized_name(record: Optional[Dict[str, Any]]) -> Optional[str]:
    names = (record or {}).get('names') or {}
    for locale in NAME_LOCALES:
        if names.get(locale):
            return names[locale]
    return None


class MaxMindProvider:
    """GeoIP2 Insights/City lookups over HTTPS with Basic authentication"""

    name = "maxmind"

    def __init__(self, account_id: Optional[str] = None, license_key: Optional[str] = None,
                 url: str = MAXMIND_DEFAULT_URL, priority: int = PRIORITY_MAXMIND,
                 timeout: float = DEFAULT_PROVIDER_TIMEOUT, service: str = 'insights'):
        self.account_id = account_id
        self.license_key = license_key
        self.url = url.rstrip('/')
        self.priority = priority
        self.timeout = timeout
        self.service = service

    def is_configured(self) -> bool:
        return bool(self.account_id and self.license_key)

    async def _request(self, ip: str) -> Dict[str, Any]:
        data = await fetch_json(
            f"{self.url}/geoip/v2.1/{self.service}/{ip}",
            self.name,
            auth=aiohttp.BasicAuth(str(self.account_id), str(self.license_key)),
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            raise ProviderError("MaxMind returned an unexpected payload", self.name, ProviderError.PARSE)
        return data

    async def get_ip_info(self, ip: str, context: Optional[RequestContext] = None) -> IPRecord:
        if not self.is_configured():
            raise ProviderError("MaxMind credentials are not configured", self.name, ProviderError.AUTH)

        try:
            data = await self._request(ip)
        except ProviderError as e:
            if e.status_code == 404:
                raise ProviderError("MaxMind IP not found in database", self.name,
                                    ProviderError.PARSE, status_code=404) from e
            raise

        traits = data.get('traits') or {}
        record = build_ip_record(traits.get('ip_address') or ip, self.name)
        record.extras.update({
            'network': traits.get('network'),
            'isAnonymousProxy': bool(traits.get('is_anonymous_proxy')),
            'isSatelliteProvider': bool(traits.get('is_satellite_provider')),
        })
        return record

    async def get_geo_info(self, ip: str, context: Optional[RequestContext] = None) -> Optional[ProviderResult]:
        if not self.is_configured():
            return None

        try:
            data = await self._request(ip)
        except ProviderError as e:
            if e.status_code == 404:
                logger.debug(f"MaxMind has no record for {ip}")
                return None
            raise

        return self.parse_geo_response(data, ip)

    def parse_geo_response(self, data: Dict[str, Any], ip: Optional[str] = None) -> ProviderResult:
        """Translate a GeoIP2 JSON document into a ProviderResult"""
        traits = data.get('traits') or {}
        location = data.get('location') or {}
        country = data.get('country') or {}
        city = data.get('city') or {}
        continent = data.get('continent') or {}
        postal = data.get('postal') or {}
        subdivisions = data.get('subdivisions') or [{}]
        subdivision = subdivisions[0] or {}

        confidence = {
            'country': country.get('confidence'),
            'city': city.get('confidence'),
            'subdivision': subdivision.get('confidence'),
            'postal': postal.get('confidence'),
        }

        extras = {
            'metroCode': location.get('metro_code'),
            'isAnonymousProxy': bool(traits.get('is_anonymous_proxy')),
            'isSatelliteProvider': bool(traits.get('is_satellite_provider')),
            'isLegitimateProxy': bool(traits.get('is_legitimate_proxy')),
        }
        flag = flag_from_country(country.get('iso_code'))
        if flag:
            extras['flag'] = flag

        return ProviderResult(
            provider=self.name,
            ip=traits.get('ip_address') or ip,
            city=_localized_name(city),
            region=_localized_name(subdivision),
            region_code=subdivision.get('iso_code'),
            country=_localized_name(country),
            country_code=country.get('iso_code'),
            continent=_localized_name(continent),
            continent_code=continent.get('code'),
            latitude=location.get('latitude'),
            longitude=location.get('longitude'),
            accuracy=location.get('accuracy_radius'),
            timezone=location.get('time_zone'),
            postal_code=postal.get('code'),
            asn=traits.get('autonomous_system_number'),
            as_organization=traits.get('autonomous_system_organization'),
            isp=traits.get('isp'),
            organization=traits.get('organization'),
            domain=traits.get('domain'),
            usage_type=traits.get('user_type'),
            confidence={k: v for k, v in confidence.items() if v is not None},
            extras=extras,
        )
