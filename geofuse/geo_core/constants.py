"""
GeoFuse Configuration Constants
Centralized constants shared by the geolocation and threat engines
"""

# Provider priorities (higher number = higher priority)
PRIORITY_EDGE = 100
PRIORITY_MAXMIND = 80
PRIORITY_IPINFO = 60

# Default timeouts (in seconds)
DEFAULT_PROVIDER_TIMEOUT = 5.0
DEFAULT_THREAT_TIMEOUT = 5.0

# Provider endpoints
MAXMIND_DEFAULT_URL = "https://geoip.maxmind.com"
IPINFO_DEFAULT_URL = "https://ipinfo.io"
DEFAULT_USER_AGENT = "GeoFuse/1.0"

# Geographic fields of the aggregated record, in output order
GEO_FIELDS = (
    'ip', 'city', 'region', 'region_code', 'country', 'country_code',
    'continent', 'continent_code', 'latitude', 'longitude', 'accuracy',
    'timezone', 'postal_code', 'asn', 'as_organization', 'isp',
    'organization', 'domain', 'usage_type',
)

# Output contract names for the geographic fields
CAMEL_CASE_FIELDS = {
    'region_code': 'regionCode',
    'country_code': 'countryCode',
    'continent_code': 'continentCode',
    'postal_code': 'postalCode',
    'as_organization': 'asOrganization',
    'usage_type': 'usageType',
}

# Fields counted for completeness (the query key is not a geographic attribute)
COMPLETENESS_FIELDS = tuple(f for f in GEO_FIELDS if f != 'ip')

# Fields every provider answer should carry
REQUIRED_GEO_FIELDS = ('ip', 'country', 'country_code')

# Validation penalties
PENALTY_INVALID_IP = 0.2
PENALTY_INVALID_COORDINATE = 0.1
PENALTY_INVALID_COUNTRY_CODE = 0.1
PENALTY_INVALID_ASN = 0.05
PENALTY_MISSING_FIELD = 0.1
VALIDATION_PASS_SCORE = 0.5

# Data quality
CONSISTENCY_BOOST = 1.2
QUALITY_PRECISION = 2

# Risk classification thresholds (inclusive lower bounds)
DEFAULT_RISK_THRESHOLDS = {
    'high': 80,
    'medium': 40,
    'low': 20,
}

# Fallback weight for a detected signal with no configured weight and no score
DEFAULT_SIGNAL_WEIGHT = 10

# Logging configuration
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_LEVEL = 'INFO'

# Third-party loggers to suppress
NOISY_LOGGERS = [
    'aiohttp.access',
    'aiohttp.client',
    'asyncio',
    'urllib3.connectionpool',
]
