"""Provider interface and the ordered provider registry"""

import logging
from typing import Dict, Iterator, List, Optional, Protocol, runtime_checkable

from ...geo_core.config import GeoFuseConfig
from ...geo_core.constants import PRIORITY_EDGE, PRIORITY_IPINFO, PRIORITY_MAXMIND
from ...geo_core.models import IPRecord, ProviderResult, RequestContext
from .edge import EdgeHeadersProvider
from .ipinfo import IPInfoProvider
from .maxmind import MaxMindProvider

logger = logging.getLogger(__name__)


@runtime_checkable
class GeoProvider(Protocol):
    """What the aggregator needs from a geolocation source.

    ``get_geo_info`` returning None means "no opinion"; hard failures are
    raised as ProviderError and isolated by the caller.
    """

    name: str
    priority: int

    def is_configured(self) -> bool:
        ...

    async def get_ip_info(self, ip: str, context: Optional[RequestContext] = None) -> IPRecord:
        ...

    async def get_geo_info(self, ip: str, context: Optional[RequestContext] = None) -> Optional[ProviderResult]:
        ...


class ProviderRegistry:
    """Providers kept in descending priority order (stable for equal priorities)"""

    def __init__(self, providers=()):
        self._providers: List[GeoProvider] = []
        for provider in providers:
            self.register(provider)

    def register(self, provider: GeoProvider) -> GeoProvider:
        if not isinstance(provider, GeoProvider):
            raise TypeError(f"{provider!r} does not implement the GeoProvider interface")
        if self.get(provider.name) is not None:
            raise ValueError(f"Provider already registered: {provider.name}")

        self._providers.append(provider)
        self._providers.sort(key=lambda p: -p.priority)
        logger.debug(f"Registered provider {provider.name} (priority {provider.priority})")
        return provider

    def get(self, name: str) -> Optional[GeoProvider]:
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def active(self, enabled: Optional[Dict[str, bool]] = None) -> List[GeoProvider]:
        """Configured providers not switched off in ``enabled``"""
        enabled = enabled or {}
        return [
            p for p in self._providers
            if enabled.get(p.name, True) and p.is_configured()
        ]

    def names(self) -> List[str]:
        return [p.name for p in self._providers]

    def __iter__(self) -> Iterator[GeoProvider]:
        return iter(list(self._providers))

    def __len__(self) -> int:
        return len(self._providers)


def create_default_registry(config: Optional[GeoFuseConfig] = None) -> ProviderRegistry:
    """Registry holding the edge, MaxMind and IPInfo providers"""
    config = config or GeoFuseConfig()
    priorities = config.provider_priorities

    return ProviderRegistry([
        EdgeHeadersProvider(priority=priorities.get('edge', PRIORITY_EDGE)),
        MaxMindProvider(
            account_id=config.maxmind_account_id,
            license_key=config.maxmind_license_key,
            url=config.maxmind_url,
            priority=priorities.get('maxmind', PRIORITY_MAXMIND),
            timeout=config.provider_timeout,
        ),
        IPInfoProvider(
            token=config.ipinfo_token,
            url=config.ipinfo_url,
            priority=priorities.get('ipinfo', PRIORITY_IPINFO),
            timeout=config.provider_timeout,
        ),
    ])
