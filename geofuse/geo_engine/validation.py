"""
Provider Result Validation and Sanitization

Scores how trustworthy a single provider answer looks and normalizes
individual field values before they are merged.
"""

import logging
import re
from typing import Any

from ..geo_core.constants import (
    PENALTY_INVALID_IP, PENALTY_INVALID_COORDINATE, PENALTY_INVALID_COUNTRY_CODE,
    PENALTY_INVALID_ASN, PENALTY_MISSING_FIELD, REQUIRED_GEO_FIELDS,
    VALIDATION_PASS_SCORE,
)
from ..geo_core.models import ProviderResult, ValidationOutcome, has_value
from ..geo_core.utils import is_valid_ip

logger = logging.getLogger(__name__)

COUNTRY_CODE_PATTERN = re.compile(r'^[A-Za-z]{2}$')
ASN_PATTERN = re.compile(r'^\s*(?:AS)?\s*(\d+)\s*$', re.IGNORECASE)
POSTAL_STRIP_PATTERN = re.compile(r'[^A-Za-z0-9 \-]')

COORDINATE_FIELDS = {'latitude', 'longitude'}
INTEGER_FIELDS = {'asn', 'accuracy'}
CODE_FIELDS = {'country_code', 'region_code', 'continent_code'}


def _to_float(value: Any):
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and infinities are not coordinates
    if result != result or result in (float('inf'), float('-inf')):
        return None
    return result


def _to_non_negative_int(value: Any):
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value) if 0 <= value < float('inf') else None
    match = ASN_PATTERN.match(str(value))
    return int(match.group(1)) if match else None


# ===============================================================================
# VALIDATION
# ===============================================================================

def validate_geo_data(result: ProviderResult) -> ValidationOutcome:
    """Score a provider result in [0, 1] and list what looked wrong.

    Every check subtracts a fixed penalty from 1.0; the score is clamped.
    Results at or below 0.5 are flagged invalid but are still usable,
    they just carry less weight in the merge.
    """
    score = 1.0
    issues = []

    if not is_valid_ip(result.ip):
        score -= PENALTY_INVALID_IP
        issues.append('Invalid or missing IP address')

    latitude = result.latitude
    if latitude is not None:
        value = _to_float(latitude)
        if value is None or not -90 <= value <= 90:
            score -= PENALTY_INVALID_COORDINATE
            issues.append('Invalid latitude')

    longitude = result.longitude
    if longitude is not None:
        value = _to_float(longitude)
        if value is None or not -180 <= value <= 180:
            score -= PENALTY_INVALID_COORDINATE
            issues.append('Invalid longitude')

    country_code = result.country_code
    if country_code is not None and not (
            isinstance(country_code, str) and COUNTRY_CODE_PATTERN.match(country_code.strip())):
        score -= PENALTY_INVALID_COUNTRY_CODE
        issues.append('Invalid country code format')

    if result.asn is not None and _to_non_negative_int(result.asn) is None:
        score -= PENALTY_INVALID_ASN
        issues.append('Invalid ASN')

    for field_name in REQUIRED_GEO_FIELDS:
        if not has_value(result.get(field_name)):
            score -= PENALTY_MISSING_FIELD
            issues.append(f'Missing required field: {field_name}')

    score = round(max(0.0, min(1.0, score)), 4)
    if issues:
        logger.debug(f"{result.provider} validation score {score}: {issues}")

    return ValidationOutcome(score=score, issues=issues, is_valid=score > VALIDATION_PASS_SCORE)


# ===============================================================================
# SANITIZATION
# ===============================================================================

def sanitize_geo_value(field_name: str, value: Any) -> Any:
    """Normalize one field value, returning None for anything unusable"""
    if value is None:
        return None

    if field_name in COORDINATE_FIELDS:
        number = _to_float(value)
        limit = 90 if field_name == 'latitude' else 180
        return number if number is not None and -limit <= number <= limit else None

    if field_name in INTEGER_FIELDS:
        return _to_non_negative_int(value)

    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if not value:
        return None

    if field_name in CODE_FIELDS:
        return value.upper()

    if field_name == 'postal_code':
        cleaned = POSTAL_STRIP_PATTERN.sub('', value).strip()
        return cleaned or None

    return value
