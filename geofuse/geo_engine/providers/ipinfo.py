"""IPInfo geolocation provider"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from ...geo_core.constants import DEFAULT_PROVIDER_TIMEOUT, IPINFO_DEFAULT_URL, PRIORITY_IPINFO
from ...geo_core.exceptions import ProviderError
from ...geo_core.http import fetch_json
from ...geo_core.models import IPRecord, ProviderResult, RequestContext
from ...geo_core.utils import build_ip_record
from ..enrichment import country_name

logger = logging.getLogger(__name__)

ORG_PATTERN = re.compile(r'^AS(\d+)\s*(.*)$', re.IGNORECASE)


def parse_org(org: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
    """Split IPInfo's "AS15169 Google LLC" into (15169, "Google LLC")"""
    if not org or not isinstance(org, str):
        return None, None
    match = ORG_PATTERN.match(org.strip())
    if not match:
        return None, org.strip()
    return int(match.group(1)), match.group(2).strip() or None


def parse_loc(loc: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not loc or not isinstance(loc, str) or ',' not in loc:
        return None, None
    latitude, longitude = loc.split(',', 1)
    return latitude.strip() or None, longitude.strip() or None


class IPInfoProvider:
    """ipinfo.io lookups; works without a token on the free tier"""

    name = "ipinfo"

    def __init__(self, token: Optional[str] = None, url: str = IPINFO_DEFAULT_URL,
                 priority: int = PRIORITY_IPINFO, timeout: float = DEFAULT_PROVIDER_TIMEOUT):
        self.token = token
        self.url = url.rstrip('/')
        self.priority = priority
        self.timeout = timeout

    def is_configured(self) -> bool:
        return True

    async def _request(self, ip: str) -> Dict[str, Any]:
        headers = {'Authorization': f'Bearer {self.token}'} if self.token else None
        data = await fetch_json(f"{self.url}/{ip}/json", self.name, headers=headers, timeout=self.timeout)
        if not isinstance(data, dict):
            raise ProviderError("IPInfo returned an unexpected payload", self.name, ProviderError.PARSE)
        return data

    async def get_ip_info(self, ip: str, context: Optional[RequestContext] = None) -> IPRecord:
        data = await self._request(ip)
        record = build_ip_record(data.get('ip') or ip, self.name)
        if data.get('hostname'):
            record.extras['hostname'] = data['hostname']
        if data.get('anycast'):
            record.extras['anycast'] = True
        return record

    async def get_geo_info(self, ip: str, context: Optional[RequestContext] = None) -> Optional[ProviderResult]:
        data = await self._request(ip)
        if data.get('bogon'):
            # Reserved ranges carry no location
            logger.debug(f"IPInfo reports {ip} as bogon")
            return None
        return self.parse_geo_response(data, ip)

    def parse_geo_response(self, data: Dict[str, Any], ip: Optional[str] = None) -> ProviderResult:
        """Translate an IPInfo JSON document into a ProviderResult"""
        latitude, longitude = parse_loc(data.get('loc'))
        asn, org_name = parse_org(data.get('org'))
        code = data.get('country')

        domain = None
        usage_type = None
        organization = org_name

        # Paid tiers expand org into asn/company objects
        asn_info = data.get('asn')
        if isinstance(asn_info, dict):
            parsed_asn, parsed_name = parse_org(asn_info.get('asn'))
            asn = parsed_asn or asn
            org_name = asn_info.get('name') or parsed_name or org_name
            domain = asn_info.get('domain')
            usage_type = asn_info.get('type')
        company = data.get('company')
        if isinstance(company, dict):
            organization = company.get('name') or organization
            domain = company.get('domain') or domain
            usage_type = company.get('type') or usage_type

        extras = {}
        if data.get('hostname'):
            extras['hostname'] = data['hostname']

        return ProviderResult(
            provider=self.name,
            ip=data.get('ip') or ip,
            city=data.get('city'),
            region=data.get('region'),
            country=data.get('country_name') or country_name(code) or code,
            country_code=code,
            latitude=latitude,
            longitude=longitude,
            timezone=data.get('timezone'),
            postal_code=data.get('postal'),
            asn=asn,
            as_organization=org_name,
            isp=org_name,
            organization=organization,
            domain=domain,
            usage_type=usage_type,
            extras=extras,
        )
