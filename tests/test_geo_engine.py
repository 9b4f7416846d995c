#!/usr/bin/env python3
"""
Geolocation Engine Tests

Validation scoring, sanitization, derived enrichment, provider adapters,
the HTTP helper and the aggregation engine.
"""

import asyncio
import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

import aiohttp

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from geofuse.geo_core.config import GeoFuseConfig
from geofuse.geo_core.exceptions import GeoLookupError, InvalidInputError, ProviderError
from geofuse.geo_core.http import fetch_json
from geofuse.geo_core.models import IPRecord, ProviderResult, RequestContext
from geofuse.geo_engine.aggregator import GeoAggregator, create_aggregator
from geofuse.geo_engine.enrichment import (
    currency_from_country, flag_from_country, languages_from_country, timezone_from_longitude
)
from geofuse.geo_engine.providers import (
    EdgeHeadersProvider, IPInfoProvider, MaxMindProvider, ProviderRegistry, create_default_registry
)
from geofuse.geo_engine.providers.ipinfo import parse_org
from geofuse.geo_engine.validation import sanitize_geo_value, validate_geo_data


def full_result(provider, **overrides):
    values = dict(ip='203.0.113.7', city='Springfield', region='Illinois', country='United States',
                  country_code='US', latitude=39.78, longitude=-89.65, asn=7018)
    values.update(overrides)
    return ProviderResult(provider=provider, **values)


class StaticProvider:
    """In-memory provider answering after an optional delay"""

    def __init__(self, name, priority, result=None, error=None, delay=0.0, extras=None):
        self.name = name
        self.priority = priority
        self.result = result
        self.error = error
        self.delay = delay
        self.extras = extras or {}
        self.calls = 0

    def is_configured(self):
        return True

    async def get_ip_info(self, ip, context=None):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return IPRecord(ip=ip, provider=self.name, extras=dict(self.extras))

    async def get_geo_info(self, ip, context=None):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeResponse:
    def __init__(self, status=200, payload=None, json_error=None):
        self.status = status
        self.payload = payload
        self.json_error = json_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if self.json_error:
            raise self.json_error
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


class TestValidation(unittest.TestCase):
    """Test provider result scoring"""

    def test_complete_result_scores_one(self):
        outcome = validate_geo_data(full_result('a'))
        self.assertEqual(outcome.score, 1.0)
        self.assertTrue(outcome.is_valid)
        self.assertEqual(outcome.issues, [])

    def test_penalties(self):
        """Each defect subtracts its penalty"""
        test_cases = [
            ({'latitude': 91}, 0.9),
            ({'longitude': -181}, 0.9),
            ({'latitude': 'north'}, 0.9),
            ({'country_code': 'USA'}, 0.9),
            ({'asn': -5}, 0.95),
            ({'asn': 'AS15169'}, 1.0),
            ({'country': None}, 0.9),
            ({'ip': 'garbage'}, 0.8),
            ({'ip': None}, 0.7),
        ]

        for overrides, expected in test_cases:
            with self.subTest(overrides=overrides):
                outcome = validate_geo_data(full_result('a', **overrides))
                self.assertAlmostEqual(outcome.score, expected, places=4)

    def test_empty_result_is_invalid_at_half(self):
        outcome = validate_geo_data(ProviderResult(provider='empty'))
        self.assertAlmostEqual(outcome.score, 0.5)
        self.assertFalse(outcome.is_valid)

    def test_penalties_accumulate(self):
        outcome = validate_geo_data(ProviderResult(
            provider='bad', latitude='x', longitude='y', country_code='123', asn='none'
        ))
        self.assertFalse(outcome.is_valid)
        self.assertAlmostEqual(outcome.score, 0.25)


class TestSanitization(unittest.TestCase):
    """Test field normalization"""

    def test_sanitize(self):
        test_cases = [
            ('latitude', '37.751', 37.751),
            ('latitude', 'north', None),
            ('latitude', 95, None),
            ('longitude', -97.822, -97.822),
            ('asn', 'AS15169', 15169),
            ('asn', '15169', 15169),
            ('asn', -1, None),
            ('accuracy', 1000.0, 1000),
            ('country_code', ' us ', 'US'),
            ('region_code', 'ca', 'CA'),
            ('continent_code', 'na', 'NA'),
            ('postal_code', '94043<script>', '94043script'),
            ('postal_code', 'SW1A 1AA', 'SW1A 1AA'),
            ('city', '  Mountain View ', 'Mountain View'),
            ('city', '   ', None),
            ('isp', None, None),
        ]

        for field_name, value, expected in test_cases:
            with self.subTest(field=field_name, value=value):
                self.assertEqual(sanitize_geo_value(field_name, value), expected)


class TestEnrichment(unittest.TestCase):
    """Test derived geographic fallbacks"""

    def test_timezone_from_longitude(self):
        test_cases = [
            (0, "UTC+00:00"),
            (-122.08, "UTC-08:00"),
            (139.69, "UTC+09:00"),
            (7.4, "UTC+00:00"),
            (180, "UTC+12:00"),
            (37.5, "UTC+03:00"),
            (-22.5, "UTC-01:00"),
            (7.5, "UTC+01:00"),
            ("abc", None),
            (None, None),
        ]

        for longitude, expected in test_cases:
            with self.subTest(longitude=longitude):
                self.assertEqual(timezone_from_longitude(longitude), expected)

    def test_flag(self):
        self.assertEqual(flag_from_country('US'), '\U0001F1FA\U0001F1F8')
        self.assertEqual(flag_from_country('gb'), '\U0001F1EC\U0001F1E7')
        self.assertIsNone(flag_from_country('USA'))
        self.assertIsNone(flag_from_country(None))

    def test_currency_and_languages(self):
        self.assertEqual(currency_from_country('US')['code'], 'USD')
        self.assertEqual(currency_from_country('DE')['code'], 'EUR')
        self.assertIsNone(currency_from_country('ZZ'))
        self.assertEqual(languages_from_country('CA'), ['en', 'fr'])
        self.assertEqual(languages_from_country('ZZ'), [])


class TestHTTPHelper(unittest.TestCase):
    """Test error mapping of the JSON fetch helper"""

    def _fetch(self, session):
        return asyncio.run(fetch_json("https://example.test/x", "test", session=session, timeout=1))

    def test_success(self):
        session = FakeSession(FakeResponse(200, {'ip': '8.8.8.8'}))
        self.assertEqual(self._fetch(session), {'ip': '8.8.8.8'})
        url, kwargs = session.requests[0]
        self.assertEqual(kwargs['headers']['Accept'], 'application/json')

    def test_error_mapping(self):
        test_cases = [
            (FakeSession(FakeResponse(401)), ProviderError.AUTH, 401),
            (FakeSession(FakeResponse(403)), ProviderError.AUTH, 403),
            (FakeSession(FakeResponse(404)), ProviderError.NETWORK, 404),
            (FakeSession(FakeResponse(502)), ProviderError.NETWORK, 502),
            (FakeSession(FakeResponse(200, json_error=ValueError("bad json"))), ProviderError.PARSE, 200),
            (FakeSession(error=asyncio.TimeoutError()), ProviderError.TIMEOUT, None),
            (FakeSession(error=aiohttp.ClientConnectionError("refused")), ProviderError.NETWORK, None),
        ]

        for session, kind, status in test_cases:
            with self.subTest(kind=kind, status=status):
                with self.assertRaises(ProviderError) as cm:
                    self._fetch(session)
                self.assertEqual(cm.exception.kind, kind)
                self.assertEqual(cm.exception.status_code, status)


class TestEdgeProvider(unittest.TestCase):
    """Test edge request-metadata geolocation"""

    def setUp(self):
        self.provider = EdgeHeadersProvider()

    def test_headers(self):
        context = RequestContext(headers={
            'CF-IPCountry': 'US',
            'CF-IPCity': 'San Francisco',
            'CF-IPLatitude': '37.77',
            'CF-IPLongitude': '-122.42',
            'CF-Ray': '8a1b2c3d4e5f6789-SJC',
        })
        result = asyncio.run(self.provider.get_geo_info('198.51.100.4', context))

        self.assertEqual(result.provider, 'edge')
        self.assertEqual(result.country_code, 'US')
        self.assertEqual(result.country, 'United States')
        self.assertEqual(result.city, 'San Francisco')
        self.assertEqual(result.latitude, '37.77')
        self.assertEqual(result.extras['colo'], 'SJC')

    def test_edge_object_takes_precedence(self):
        context = RequestContext(headers={'cf-ipcity': 'Lyon'},
                                 edge={'city': 'Paris', 'country': 'FR', 'colo': 'CDG'})
        result = asyncio.run(self.provider.get_geo_info('198.51.100.4', context))
        self.assertEqual(result.city, 'Paris')
        self.assertEqual(result.extras['colo'], 'CDG')

    def test_no_edge_metadata_means_no_opinion(self):
        self.assertIsNone(asyncio.run(self.provider.get_geo_info('198.51.100.4', None)))
        self.assertIsNone(asyncio.run(self.provider.get_geo_info(
            '198.51.100.4', RequestContext(headers={'user-agent': 'x'}))))
        # Tor pseudo country carries no location
        self.assertIsNone(asyncio.run(self.provider.get_geo_info(
            '198.51.100.4', RequestContext(headers={'cf-ipcountry': 'T1'}))))

    def test_ip_info(self):
        context = RequestContext(headers={'cf-ray': 'abc-ams'})
        record = asyncio.run(self.provider.get_ip_info('10.0.0.1', context))
        self.assertTrue(record.is_private)
        self.assertEqual(record.extras['colo'], 'AMS')


MAXMIND_RESPONSE = {
    'city': {'confidence': 60, 'names': {'en': 'Mountain View'}},
    'continent': {'code': 'NA', 'names': {'en': 'North America'}},
    'country': {'confidence': 99, 'iso_code': 'US', 'names': {'en': 'United States'}},
    'location': {'accuracy_radius': 1000, 'latitude': 37.386, 'longitude': -122.0838,
                 'time_zone': 'America/Los_Angeles', 'metro_code': 807},
    'postal': {'code': '94035', 'confidence': 40},
    'subdivisions': [{'confidence': 90, 'iso_code': 'CA', 'names': {'zh-CN': '加利福尼亚州'}}],
    'traits': {
        'ip_address': '8.8.8.8', 'autonomous_system_number': 15169,
        'autonomous_system_organization': 'GOOGLE', 'isp': 'Google', 'organization': 'Google',
        'domain': 'google.com', 'user_type': 'hosting', 'is_anonymous_proxy': False,
    },
}


class TestMaxMindProvider(unittest.TestCase):
    """Test the GeoIP2 web service adapter"""

    def setUp(self):
        self.provider = MaxMindProvider(account_id='123456', license_key='secret', timeout=2)

    def test_is_configured(self):
        self.assertTrue(self.provider.is_configured())
        self.assertFalse(MaxMindProvider(account_id='123456').is_configured())

    def test_unconfigured_has_no_opinion(self):
        provider = MaxMindProvider()
        self.assertIsNone(asyncio.run(provider.get_geo_info('8.8.8.8')))
        with self.assertRaises(ProviderError) as cm:
            asyncio.run(provider.get_ip_info('8.8.8.8'))
        self.assertEqual(cm.exception.kind, ProviderError.AUTH)

    def test_request_uses_basic_auth(self):
        with patch('geofuse.geo_engine.providers.maxmind.fetch_json',
                   new=AsyncMock(return_value=MAXMIND_RESPONSE)) as mock_fetch:
            result = asyncio.run(self.provider.get_geo_info('8.8.8.8'))

        args, kwargs = mock_fetch.call_args
        self.assertEqual(args[0], 'https://geoip.maxmind.com/geoip/v2.1/insights/8.8.8.8')
        self.assertEqual(kwargs['auth'], aiohttp.BasicAuth('123456', 'secret'))
        self.assertEqual(kwargs['timeout'], 2)
        self.assertEqual(result.country_code, 'US')

    def test_parse_geo_response(self):
        result = self.provider.parse_geo_response(MAXMIND_RESPONSE)

        self.assertEqual(result.ip, '8.8.8.8')
        self.assertEqual(result.city, 'Mountain View')
        self.assertEqual(result.region, '加利福尼亚州')
        self.assertEqual(result.region_code, 'CA')
        self.assertEqual(result.accuracy, 1000)
        self.assertEqual(result.asn, 15169)
        self.assertEqual(result.usage_type, 'hosting')
        self.assertEqual(result.confidence, {'country': 99, 'city': 60, 'subdivision': 90, 'postal': 40})
        self.assertEqual(result.extras['metroCode'], 807)
        self.assertFalse(result.extras['isAnonymousProxy'])

    def test_not_found(self):
        not_found = ProviderError("HTTP 404", "maxmind", ProviderError.NETWORK, status_code=404)
        with patch.object(self.provider, '_request', new=AsyncMock(side_effect=not_found)):
            self.assertIsNone(asyncio.run(self.provider.get_geo_info('192.0.2.1')))
            with self.assertRaises(ProviderError) as cm:
                asyncio.run(self.provider.get_ip_info('192.0.2.1'))
        self.assertEqual(cm.exception.kind, ProviderError.PARSE)

    def test_auth_failure_raises(self):
        denied = ProviderError("HTTP 401", "maxmind", ProviderError.AUTH, status_code=401)
        with patch.object(self.provider, '_request', new=AsyncMock(side_effect=denied)):
            with self.assertRaises(ProviderError) as cm:
                asyncio.run(self.provider.get_geo_info('8.8.8.8'))
        self.assertEqual(cm.exception.kind, ProviderError.AUTH)


IPINFO_RESPONSE = {
    'ip': '8.8.8.8',
    'hostname': 'dns.google',
    'city': 'Mountain View',
    'region': 'California',
    'country': 'US',
    'loc': '37.4056,-122.0775',
    'org': 'AS15169 Google LLC',
    'postal': '94043',
    'timezone': 'America/Los_Angeles',
}


class TestIPInfoProvider(unittest.TestCase):
    """Test the ipinfo.io adapter"""

    def test_parse_org(self):
        self.assertEqual(parse_org('AS15169 Google LLC'), (15169, 'Google LLC'))
        self.assertEqual(parse_org('Some Org'), (None, 'Some Org'))
        self.assertEqual(parse_org(None), (None, None))

    def test_parse_geo_response(self):
        result = IPInfoProvider().parse_geo_response(IPINFO_RESPONSE)

        self.assertEqual(result.country, 'United States')
        self.assertEqual(result.country_code, 'US')
        self.assertEqual(result.latitude, '37.4056')
        self.assertEqual(result.longitude, '-122.0775')
        self.assertEqual(result.asn, 15169)
        self.assertEqual(result.isp, 'Google LLC')
        self.assertEqual(result.postal_code, '94043')
        self.assertEqual(result.extras['hostname'], 'dns.google')

    def test_token_sent_as_bearer(self):
        provider = IPInfoProvider(token='abc123')
        with patch('geofuse.geo_engine.providers.ipinfo.fetch_json',
                   new=AsyncMock(return_value=IPINFO_RESPONSE)) as mock_fetch:
            asyncio.run(provider.get_geo_info('8.8.8.8'))

        args, kwargs = mock_fetch.call_args
        self.assertEqual(args[0], 'https://ipinfo.io/8.8.8.8/json')
        self.assertEqual(kwargs['headers'], {'Authorization': 'Bearer abc123'})

    def test_bogon_has_no_opinion(self):
        with patch('geofuse.geo_engine.providers.ipinfo.fetch_json',
                   new=AsyncMock(return_value={'ip': '10.0.0.1', 'bogon': True})):
            self.assertIsNone(asyncio.run(IPInfoProvider().get_geo_info('10.0.0.1')))

    def test_unexpected_payload(self):
        with patch('geofuse.geo_engine.providers.ipinfo.fetch_json', new=AsyncMock(return_value=[1, 2])):
            with self.assertRaises(ProviderError) as cm:
                asyncio.run(IPInfoProvider().get_geo_info('8.8.8.8'))
        self.assertEqual(cm.exception.kind, ProviderError.PARSE)


class TestProviderRegistry(unittest.TestCase):
    """Test provider ordering and filtering"""

    def test_sorted_by_priority(self):
        registry = ProviderRegistry([
            StaticProvider('low', 10), StaticProvider('high', 90), StaticProvider('mid', 50),
        ])
        self.assertEqual(registry.names(), ['high', 'mid', 'low'])

    def test_equal_priorities_keep_registration_order(self):
        registry = ProviderRegistry([StaticProvider('first', 50), StaticProvider('second', 50)])
        self.assertEqual(registry.names(), ['first', 'second'])

    def test_rejects_duplicates_and_non_providers(self):
        registry = ProviderRegistry([StaticProvider('a', 1)])
        with self.assertRaises(ValueError):
            registry.register(StaticProvider('a', 2))
        with self.assertRaises(TypeError):
            registry.register(object())

    def test_default_registry(self):
        config = GeoFuseConfig(maxmind_account_id='1', maxmind_license_key='k',
                               providers={'edge': True, 'maxmind': True, 'ipinfo': False})
        registry = create_default_registry(config)

        self.assertEqual(registry.names(), ['edge', 'maxmind', 'ipinfo'])
        self.assertEqual([p.name for p in registry.active(config.providers)], ['edge', 'maxmind'])


class TestGeoAggregator(unittest.TestCase):
    """Test fan-out, per-field merging and data quality"""

    def aggregate(self, providers, ip='203.0.113.7', **config_values):
        config = GeoFuseConfig(**config_values)
        aggregator = GeoAggregator(config, registry=ProviderRegistry(providers))
        return asyncio.run(aggregator.get_geo_info(ip))

    def test_higher_priority_wins_each_field(self):
        record = self.aggregate([
            StaticProvider('low', 60, full_result('low', city='Lowtown', postal_code='62701')),
            StaticProvider('high', 100, full_result('high', city='Hightown')),
        ])

        self.assertEqual(record.city, 'Hightown')
        # Fields only the lower-priority provider knows are still filled
        self.assertEqual(record.postal_code, '62701')
        self.assertEqual([s.provider for s in record.sources], ['high', 'low'])
        self.assertIn('postal_code', record.sources[1].fields)
        self.assertNotIn('city', record.sources[1].fields)

    def test_validation_score_scales_priority(self):
        poor = ProviderResult(provider='poor', city='Wrongville', latitude=200, longitude=500)
        record = self.aggregate([
            StaticProvider('poor', 100, poor),
            StaticProvider('good', 60, full_result('good', city='Rightville', latitude=None, longitude=None)),
        ])

        # 100 x 0.3 loses to 60 x 1.0
        self.assertEqual(record.city, 'Rightville')
        self.assertIsNone(record.latitude)
        self.assertEqual(record.sources[0].validation_score, 0.3)

    def test_result_independent_of_arrival_order(self):
        def run(high_delay, low_delay):
            return self.aggregate([
                StaticProvider('high', 100, full_result('high', city='Hightown'), delay=high_delay),
                StaticProvider('low', 60, full_result('low', city='Lowtown'), delay=low_delay),
            ])

        slow_high = run(0.05, 0.0)
        fast_high = run(0.0, 0.05)
        self.assertEqual(slow_high.city, 'Hightown')
        self.assertEqual(slow_high.city, fast_high.city)
        self.assertEqual([s.provider for s in slow_high.sources], [s.provider for s in fast_high.sources])

    def test_equal_weight_keeps_first_provider(self):
        record = self.aggregate([
            StaticProvider('first', 80, full_result('first', city='Alpha')),
            StaticProvider('second', 80, full_result('second', city='Beta')),
        ])
        self.assertEqual(record.city, 'Alpha')

    def test_confidence_merge(self):
        record = self.aggregate([
            StaticProvider('a', 100, full_result('a', confidence={'city': 50})),
            StaticProvider('b', 80, full_result('b', confidence={'city': 90, 'country': 99})),
        ])
        self.assertEqual(record.confidence['city'], {'value': 50, 'source': 'a', 'priority': 100})
        self.assertEqual(record.confidence['country'], {'value': 99, 'source': 'b', 'priority': 80})

    def test_data_quality(self):
        record = self.aggregate([StaticProvider('only', 100, full_result('only'))])

        # city, region, country, country_code, latitude, longitude, asn
        self.assertEqual(record.data_quality.completeness, round(7 / 18, 2))
        self.assertEqual(record.data_quality.accuracy, 1.0)
        self.assertEqual(record.data_quality.consistency, 1.0)
        self.assertEqual(record.data_quality.overall, round((7 / 18 + 2) / 3, 2))

    def test_data_quality_is_repeatable(self):
        def providers():
            return [
                StaticProvider('a', 100, full_result('a', postal_code='62701'), delay=0.02),
                StaticProvider('b', 80, full_result('b', country=None, timezone='America/Chicago')),
                StaticProvider('c', 60, error=ProviderError("down", "c", ProviderError.NETWORK)),
            ]

        with self.assertLogs('geofuse.geo_engine.aggregator', level='WARNING'):
            first = self.aggregate(providers())
            second = self.aggregate(providers())

        self.assertEqual(first.data_quality, second.data_quality)
        self.assertEqual(first.data_quality.completeness, round(9 / 18, 2))

    def test_consistency_boost_with_several_contributors(self):
        record = self.aggregate([
            StaticProvider('a', 100, full_result('a', country=None)),
            StaticProvider('b', 80, full_result('b', latitude=100)),
        ])
        self.assertEqual(record.data_quality.accuracy, 0.9)
        self.assertEqual(record.data_quality.consistency, 1.0)

    def test_derived_enrichment_is_fallback_only(self):
        record = self.aggregate([StaticProvider('a', 100, full_result('a'))])
        self.assertEqual(record.timezone, 'UTC-06:00')
        self.assertEqual(record.currency['code'], 'USD')
        self.assertEqual(record.languages, ['en'])
        self.assertEqual(record.flag, flag_from_country('US'))

        record = self.aggregate([StaticProvider('a', 100, full_result('a', timezone='America/Chicago'))])
        self.assertEqual(record.timezone, 'America/Chicago')

    def test_failures_are_isolated(self):
        failing = ProviderError("down", "broken", ProviderError.NETWORK)
        with self.assertLogs('geofuse.geo_engine.aggregator', level='WARNING'):
            record = self.aggregate([
                StaticProvider('broken', 100, error=failing),
                StaticProvider('empty', 90, None),
                StaticProvider('ok', 60, full_result('ok')),
            ])

        self.assertEqual([s.provider for s in record.sources], ['ok'])
        self.assertEqual(record.failed_sources[0].to_dict()['error'], 'network')
        self.assertEqual(record.country_code, 'US')

    def test_all_providers_timing_out(self):
        providers = [
            StaticProvider(name, priority, full_result(name), delay=1.0)
            for name, priority in (('edge', 100), ('maxmind', 80), ('ipinfo', 60))
        ]
        with self.assertLogs('geofuse.geo_engine.aggregator', level='WARNING'):
            record = self.aggregate(providers, provider_timeout=0.01)

        data = record.to_dict()
        self.assertEqual(data['sources'], [])
        self.assertEqual(data['dataQuality']['completeness'], 0)
        for name in ('city', 'country', 'countryCode', 'latitude', 'longitude', 'asn', 'timezone'):
            with self.subTest(field=name):
                self.assertIsNone(data[name])
        self.assertEqual([f['error'] for f in data['failedSources']], ['timeout'] * 3)

    def test_invalid_ip_rejected_before_fan_out(self):
        provider = StaticProvider('a', 100, full_result('a'))
        aggregator = GeoAggregator(GeoFuseConfig(), registry=ProviderRegistry([provider]))

        with self.assertRaises(InvalidInputError):
            asyncio.run(aggregator.get_geo_info('300.1.1.1'))
        self.assertEqual(provider.calls, 0)

    def test_unexpected_error_becomes_geo_lookup_error(self):
        aggregator = GeoAggregator(GeoFuseConfig(), registry=ProviderRegistry([]))
        with patch.object(aggregator, '_aggregate', new=AsyncMock(side_effect=KeyError('boom'))):
            with self.assertRaises(GeoLookupError) as cm:
                asyncio.run(aggregator.get_geo_info('8.8.8.8'))
        self.assertEqual(cm.exception.message, "Failed to retrieve geolocation information")

    def test_threat_attached_inside_its_own_boundary(self):
        aggregator = GeoAggregator(GeoFuseConfig(), registry=ProviderRegistry([
            StaticProvider('a', 100, full_result('a'))
        ]))
        with patch.object(aggregator.threat_engine, 'assess', new=AsyncMock(side_effect=RuntimeError('x'))):
            record = asyncio.run(aggregator.get_geo_info('203.0.113.7', include_threat=True))

        self.assertEqual(record.threat, {'error': 'unavailable'})
        self.assertEqual(record.country_code, 'US')

    def test_get_ip_info_merges_extras_by_priority(self):
        aggregator = GeoAggregator(GeoFuseConfig(), registry=ProviderRegistry([
            StaticProvider('low', 60, extras={'hostname': 'low.example', 'anycast': True}),
            StaticProvider('high', 100, extras={'hostname': 'high.example'}),
            StaticProvider('down', 80, error=ProviderError("x", "down", ProviderError.TIMEOUT)),
        ]))
        record = asyncio.run(aggregator.get_ip_info('8.8.8.8'))

        self.assertEqual(record.extras, {'hostname': 'high.example', 'anycast': True})
        self.assertEqual([s['provider'] for s in record.sources], ['high', 'low'])
        self.assertEqual(record.type, 'public')


class TestScenarioLookup(unittest.TestCase):
    """End-to-end lookup through the real adapters with HTTP mocked"""

    def test_public_resolver(self):
        aggregator = create_aggregator(GeoFuseConfig())
        with patch('geofuse.geo_engine.providers.ipinfo.fetch_json',
                   new=AsyncMock(return_value=IPINFO_RESPONSE)):
            record = asyncio.run(aggregator.get_geo_info('8.8.8.8', include_threat=True))

        data = record.to_dict()
        self.assertEqual(data['countryCode'], 'US')
        self.assertIn('Google', data['isp'])
        self.assertEqual([s['provider'] for s in data['sources']], ['ipinfo'])
        self.assertFalse(data['threat']['isVPN'])
        self.assertEqual(data['threat']['riskLevel'], 'minimal')
        self.assertEqual(data['threat']['reputation'], 'good')


if __name__ == '__main__':
    unittest.main()
