"""
GeoFuse Custom Exceptions
Standardized exception hierarchy for lookup and assessment errors
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class GeoFuseError(Exception):
    """Base exception for all GeoFuse errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/reporting"""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'timestamp': self.timestamp.isoformat()
        }


class InvalidInputError(GeoFuseError):
    """Malformed caller input, raised before any provider is contacted"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)
        super().__init__(message, context)


class ConfigurationError(GeoFuseError):
    """Configuration-related errors"""

    def __init__(self, message: str, config_file: Optional[str] = None,
                 config_key: Optional[str] = None):
        context = {}
        if config_file:
            context['config_file'] = config_file
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)


class ProviderError(GeoFuseError):
    """Hard failure of a single geolocation provider"""

    TIMEOUT = "timeout"
    AUTH = "auth"
    NETWORK = "network"
    PARSE = "parse"

    KINDS = (TIMEOUT, AUTH, NETWORK, PARSE)

    def __init__(self, message: str, provider: str, kind: str,
                 status_code: Optional[int] = None):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown provider error kind: {kind}")
        context = {'provider': provider, 'kind': kind}
        if status_code is not None:
            context['status_code'] = status_code
        super().__init__(message, context)
        self.provider = provider
        self.kind = kind
        self.status_code = status_code


class GeoLookupError(GeoFuseError):
    """Unexpected failure on the geolocation path"""

    def __init__(self, message: str = "Failed to retrieve geolocation information",
                 ip: Optional[str] = None):
        super().__init__(message, {'ip': ip} if ip else None)
        self.ip = ip
