"""
Derived Geographic Enrichment

Static lookups applied to a merged record as fallbacks only: timezone from
longitude, flag emoji, currency and spoken languages from the country code.
"""

import math
from typing import Any, Dict, List, Optional

COUNTRY_NAMES = {
    'US': 'United States', 'GB': 'United Kingdom', 'CA': 'Canada',
    'AU': 'Australia', 'DE': 'Germany', 'FR': 'France', 'JP': 'Japan',
    'CN': 'China', 'IN': 'India', 'BR': 'Brazil', 'RU': 'Russia',
    'IT': 'Italy', 'ES': 'Spain', 'KR': 'South Korea', 'MX': 'Mexico',
    'NL': 'Netherlands', 'SE': 'Sweden', 'NO': 'Norway', 'DK': 'Denmark',
    'FI': 'Finland', 'AR': 'Argentina', 'SG': 'Singapore', 'HK': 'Hong Kong',
    'TW': 'Taiwan', 'IE': 'Ireland', 'CH': 'Switzerland', 'PL': 'Poland',
    'ZA': 'South Africa', 'NZ': 'New Zealand', 'KE': 'Kenya',
}

CURRENCIES = {
    'US': {'code': 'USD', 'name': 'US Dollar', 'symbol': '$'},
    'GB': {'code': 'GBP', 'name': 'British Pound', 'symbol': '£'},
    'JP': {'code': 'JPY', 'name': 'Japanese Yen', 'symbol': '¥'},
    'CN': {'code': 'CNY', 'name': 'Chinese Yuan', 'symbol': '¥'},
    'CA': {'code': 'CAD', 'name': 'Canadian Dollar', 'symbol': 'C$'},
    'AU': {'code': 'AUD', 'name': 'Australian Dollar', 'symbol': 'A$'},
    'IN': {'code': 'INR', 'name': 'Indian Rupee', 'symbol': '₹'},
    'BR': {'code': 'BRL', 'name': 'Brazilian Real', 'symbol': 'R$'},
    'RU': {'code': 'RUB', 'name': 'Russian Ruble', 'symbol': '₽'},
    'CH': {'code': 'CHF', 'name': 'Swiss Franc', 'symbol': 'CHF'},
    'KR': {'code': 'KRW', 'name': 'South Korean Won', 'symbol': '₩'},
    'MX': {'code': 'MXN', 'name': 'Mexican Peso', 'symbol': '$'},
    'SE': {'code': 'SEK', 'name': 'Swedish Krona', 'symbol': 'kr'},
    'NO': {'code': 'NOK', 'name': 'Norwegian Krone', 'symbol': 'kr'},
    'DK': {'code': 'DKK', 'name': 'Danish Krone', 'symbol': 'kr'},
}

# Euro area members share one currency
EURO_COUNTRIES = {
    'AT', 'BE', 'CY', 'DE', 'EE', 'ES', 'FI', 'FR', 'GR', 'HR', 'IE',
    'IT', 'LT', 'LU', 'LV', 'MT', 'NL', 'PT', 'SI', 'SK',
}
EURO = {'code': 'EUR', 'name': 'Euro', 'symbol': '€'}

LANGUAGES = {
    'US': ['en'], 'GB': ['en'], 'CA': ['en', 'fr'], 'FR': ['fr'],
    'DE': ['de'], 'ES': ['es'], 'IT': ['it'], 'JP': ['ja'], 'CN': ['zh'],
    'RU': ['ru'], 'BR': ['pt'], 'IN': ['hi', 'en'], 'MX': ['es'],
    'AR': ['es'], 'KR': ['ko'], 'NL': ['nl'], 'SE': ['sv'], 'NO': ['no'],
    'DK': ['da'], 'FI': ['fi', 'sv'], 'CH': ['de', 'fr', 'it'],
}


def country_name(country_code: Optional[str]) -> Optional[str]:
    if not country_code:
        return None
    return COUNTRY_NAMES.get(country_code.upper())


def flag_from_country(country_code: Optional[str]) -> Optional[str]:
    """Regional-indicator flag emoji for a 2-letter country code"""
    if not country_code or len(country_code) != 2 or not country_code.isalpha():
        return None
    return ''.join(chr(127397 + ord(char)) for char in country_code.upper())


def currency_from_country(country_code: Optional[str]) -> Optional[Dict[str, str]]:
    if not country_code:
        return None
    code = country_code.upper()
    if code in EURO_COUNTRIES:
        return dict(EURO)
    currency = CURRENCIES.get(code)
    return dict(currency) if currency else None


def languages_from_country(country_code: Optional[str]) -> List[str]:
    if not country_code:
        return []
    return list(LANGUAGES.get(country_code.upper(), []))


def timezone_from_longitude(longitude: Any) -> Optional[str]:
    """Rough UTC offset from longitude: one hour per 15 degrees"""
    try:
        value = float(longitude)
    except (TypeError, ValueError):
        return None
    if value != value or not -180 <= value <= 180:
        return None

    # Half zones round up
    offset = math.floor(value / 15 + 0.5)
    sign = '+' if offset >= 0 else '-'
    return f"UTC{sign}{abs(offset):02d}:00"
