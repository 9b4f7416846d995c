"""Edge network (Cloudflare) request-metadata geolocation provider"""

import logging
from typing import Any, Dict, Optional

from ...geo_core.constants import PRIORITY_EDGE
from ...geo_core.models import IPRecord, ProviderResult, RequestContext
from ...geo_core.utils import build_ip_record
from ..enrichment import country_name, flag_from_country

logger = logging.getLogger(__name__)

# Cloudflare reports unknown and Tor traffic with pseudo country codes
PSEUDO_COUNTRY_CODES = {'XX', 'T1'}

# Edge object key -> request header fallback
HEADER_FALLBACKS = {
    'city': 'cf-ipcity',
    'region': 'cf-region',
    'regionCode': 'cf-region-code',
    'country': 'cf-ipcountry',
    'continent': 'cf-ipcontinent',
    'latitude': 'cf-iplatitude',
    'longitude': 'cf-iplongitude',
    'timezone': 'cf-timezone',
    'postalCode': 'cf-postal-code',
    'asn': 'x-asn',
}

GEO_KEYS = ('city', 'region', 'regionCode', 'country', 'latitude', 'longitude', 'postalCode')


class EdgeHeadersProvider:
    """Geolocation taken from the edge network's request metadata.

    Reads the edge object (Cloudflare's ``request.cf``) first and falls back
    to the geolocation headers the edge injects. Never performs I/O.
    """

    name = "edge"

    def __init__(self, priority: int = PRIORITY_EDGE):
        self.priority = priority

    def is_configured(self) -> bool:
        return True

    def _lookup(self, context: RequestContext, key: str) -> Any:
        value = context.edge.get(key)
        if value is None or value == '':
            value = context.header(HEADER_FALLBACKS.get(key, ''))
        return value

    def _colo(self, context: RequestContext) -> Optional[str]:
        colo = context.edge.get('colo')
        if colo:
            return colo
        # cf-ray looks like "8a1b2c3d4e5f6789-SJC"
        ray = context.header('cf-ray')
        if ray and '-' in ray:
            return ray.rsplit('-', 1)[1].upper() or None
        return None

    def _edge_values(self, context: RequestContext) -> Dict[str, Any]:
        values = {key: self._lookup(context, key) for key in HEADER_FALLBACKS}

        code = values.get('country')
        if isinstance(code, str):
            code = code.strip().upper()
            values['country'] = None if code in PSEUDO_COUNTRY_CODES else code
        return values

    async def get_ip_info(self, ip: str, context: Optional[RequestContext] = None) -> IPRecord:
        context = context or RequestContext()
        record = build_ip_record(ip, self.name)

        colo = self._colo(context)
        if colo:
            record.extras['colo'] = colo
        country = self._edge_values(context).get('country')
        if country:
            record.extras['countryCode'] = country
        return record

    async def get_geo_info(self, ip: str, context: Optional[RequestContext] = None) -> Optional[ProviderResult]:
        if context is None:
            return None

        values = self._edge_values(context)
        if not any(values.get(key) not in (None, '') for key in GEO_KEYS):
            logger.debug(f"No edge geolocation metadata for {ip}")
            return None

        code = values.get('country')
        extras = {}
        colo = self._colo(context)
        if colo:
            extras['colo'] = colo
        flag = flag_from_country(code)
        if flag:
            extras['flag'] = flag

        return ProviderResult(
            provider=self.name,
            ip=ip,
            city=values.get('city'),
            region=values.get('region'),
            region_code=values.get('regionCode'),
            country=country_name(code) or code,
            country_code=code,
            continent=context.edge.get('continentName'),
            continent_code=values.get('continent'),
            latitude=values.get('latitude'),
            longitude=values.get('longitude'),
            timezone=values.get('timezone'),
            postal_code=values.get('postalCode'),
            asn=values.get('asn'),
            as_organization=context.edge.get('asOrganization'),
            extras=extras,
        )
