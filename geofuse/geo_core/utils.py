"""GeoFuse Core Utils - IP address validation and classification"""

import ipaddress
import logging
from typing import Any, Optional, Union

from .exceptions import InvalidInputError
from .models import IPRecord

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _parse(ip_str: Any) -> Optional[IPAddress]:
    if not isinstance(ip_str, str) or not ip_str.strip():
        return None
    try:
        return ipaddress.ip_address(ip_str.strip())
    except ValueError:
        return None


def is_valid_ip(ip_str: Any) -> bool:
    """Validate if value is a well-formed IPv4 or IPv6 literal"""
    return _parse(ip_str) is not None


def normalize_ip(ip_str: Any) -> Optional[str]:
    """Canonical text form of an IP address, or None if malformed"""
    parsed = _parse(ip_str)
    return str(parsed) if parsed is not None else None


def require_valid_ip(ip_str: Any) -> str:
    """Return the canonical IP or raise InvalidInputError"""
    normalized = normalize_ip(ip_str)
    if normalized is None:
        raise InvalidInputError("Invalid IP address", field='ip', value=ip_str)
    return normalized


def get_ip_version(ip_str: Any) -> Optional[int]:
    parsed = _parse(ip_str)
    return parsed.version if parsed is not None else None


def get_ip_type(ip_str: Any) -> Optional[str]:
    """Classify an address as private/loopback/multicast/link-local/broadcast/public"""
    parsed = _parse(ip_str)
    if parsed is None:
        return None
    if parsed.is_loopback:
        return 'loopback'
    if parsed.is_link_local:
        return 'link-local'
    if parsed.is_multicast:
        return 'multicast'
    if is_broadcast_ip(ip_str):
        return 'broadcast'
    if parsed.is_private:
        return 'private'
    return 'public'


def is_private_ip(ip_str: Any) -> bool:
    parsed = _parse(ip_str)
    return bool(parsed is not None and parsed.is_private)


def is_loopback_ip(ip_str: Any) -> bool:
    parsed = _parse(ip_str)
    return bool(parsed is not None and parsed.is_loopback)


def is_multicast_ip(ip_str: Any) -> bool:
    parsed = _parse(ip_str)
    return bool(parsed is not None and parsed.is_multicast)


def is_broadcast_ip(ip_str: Any) -> bool:
    parsed = _parse(ip_str)
    return bool(parsed is not None and parsed.version == 4
                and parsed == ipaddress.IPv4Address('255.255.255.255'))


def build_ip_record(ip_str: str, provider: Optional[str] = None) -> IPRecord:
    """IPRecord populated with the characteristics derivable from the address alone"""
    return IPRecord(
        ip=ip_str,
        version=get_ip_version(ip_str),
        type=get_ip_type(ip_str),
        is_private=is_private_ip(ip_str),
        is_loopback=is_loopback_ip(ip_str),
        is_multicast=is_multicast_ip(ip_str),
        provider=provider,
    )
