"""Geolocation Provider Adapters

Each adapter translates one backing service's wire format into the common
ProviderResult / IPRecord models:
- edge: geolocation injected by the edge network into the request (no I/O)
- maxmind: GeoIP2 web service (HTTP Basic auth)
- ipinfo: ipinfo.io (optional bearer token)
"""

from .edge import EdgeHeadersProvider
from .maxmind import MaxMindProvider
from .ipinfo import IPInfoProvider
from .registry import GeoProvider, ProviderRegistry, create_default_registry

__all__ = [
    'GeoProvider',
    'ProviderRegistry',
    'EdgeHeadersProvider',
    'MaxMindProvider',
    'IPInfoProvider',
    'create_default_registry',
]
