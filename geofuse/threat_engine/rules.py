"""
Static Threat Detection Rules

Allow/deny range tables, header and user-agent signatures, and the score
each heuristic contributes. Tables are compiled once into PrefixTables and
shared read-only by every assessment.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Pattern, Tuple

from .prefix_table import PrefixTable

# ===============================================================================
# RANGE TABLES
# ===============================================================================

# Residential and backbone ISPs that must never be reported as VPN or proxy
LEGITIMATE_ISPS = (
    # China
    '1.', '14.', '27.', '36.', '39.', '42.', '49.', '58.', '59.', '60.', '61.',
    '101.', '106.', '110.', '111.', '112.', '113.', '114.', '115.', '116.',
    '117.', '118.', '119.', '120.', '121.', '122.', '123.', '124.', '125.',
    '175.', '180.', '182.', '183.', '202.', '203.', '210.', '211.', '218.',
    '219.', '220.', '221.', '222.', '223.',
    # Public resolvers
    '8.8.', '8.34.', '1.1.', '1.0.', '4.2.2.', '208.67.',
    # North America
    '24.', '50.', '66.', '67.', '68.', '69.', '70.', '71.', '72.', '73.',
    '74.', '75.', '76.', '96.', '97.', '98.', '99.',
    '173.', '174.', '184.', '190.',
    # Europe
    '80.', '81.', '82.', '83.', '84.', '85.', '86.', '87.', '88.', '89.',
    '90.', '91.', '92.', '93.', '94.', '95.',
    # Other regions
    '200.', '201.', '196.', '197.', '198.', '199.',
    # IPv6
    '2409:', '240e:', '2408:', '240c:', '2001:da8:',
    '2001:4860:', '2a00:1450:', '2001:558:', '2600:1400:', '2001:4998:',
    '2620:0:', '2a02:26f0:', '2001:8b0:', '2001:200:', '2400:cb00:',
)

KNOWN_VPN_RANGES = (
    '185.220.100.', '185.220.101.', '185.220.102.',
    '198.98.50.', '198.98.51.', '198.98.52.',
    '46.166.160.', '46.166.161.',
    '192.42.116.',
    '2001:67c:4e8:', '2a03:2880:',
)

DATACENTER_RANGES = (
    # DigitalOcean
    '138.68.', '159.89.', '167.99.', '207.154.', '178.62.', '46.101.',
    # OVH
    '5.79.', '5.135.', '167.114.',
    # Scaleway
    '51.15.', '51.158.',
    # Cloud ranges associated with VPN endpoints
    '52.0.', '52.1.', '52.2.', '35.0.', '35.1.', '35.2.', '40.0.', '40.1.', '40.2.',
)

# CDNs, clouds and crawlers that must never be reported as proxy
LEGITIMATE_SERVICES = (
    '104.28.', '172.67.', '151.101.', '185.199.', '140.82.', '13.107.', '23.',
    '52.', '54.', '35.', '34.', '40.', '13.',
    '66.249.', '157.55.', '199.16.', '31.13.',
)

PROXY_RANGES = (
    '185.220.100.', '185.220.101.', '198.98.50.', '198.98.51.',
    '46.166.160.', '46.166.161.', '192.42.116.',
    '5.79.', '5.135.', '51.15.', '51.158.', '167.114.',
)

TOR_EXIT_RANGES = ('185.220.', '199.87.', '176.10.', '51.15.', '163.172.', '95.216.')

KNOWN_GOOD_RANGES = ('8.8.8.', '1.1.1.', '208.67.222.')

# ===============================================================================
# HEADER AND USER-AGENT SIGNATURES
# ===============================================================================

VPN_HEADERS = ('x-vpn-client', 'x-tunnel-type', 'x-original-forwarded-for')

PROXY_HEADERS = (
    'x-forwarded-for', 'x-real-ip', 'x-proxy-id', 'via', 'forwarded',
    'x-cluster-client-ip', 'x-forwarded-proto', 'x-forwarded-host',
)

CDN_HEADERS = ('cf-connecting-ip', 'cf-ipcountry', 'cf-ray', 'cf-visitor')

TOR_HEADERS = ('x-tor-exit-node', 'x-tor-relay', 'x-onion-location')

SUSPICIOUS_PORTS = ('8080', '3128', '1080', '8888', '9050')
SOCKS_PORTS = ('1080', '9050')

BOT_USER_AGENTS = ('bot', 'crawler', 'spider', 'scraper', 'curl', 'wget', 'python', 'requests')

PROXY_USER_AGENTS = (
    'squid', 'proxy', 'curl', 'wget', 'python-requests', 'go-http-client',
    'okhttp', 'apache-httpclient', 'java', r'node\.js', 'postman', 'insomnia',
)

VPN_USER_AGENTS = (
    'openvpn', 'nordvpn', 'expressvpn', 'surfshark', 'cyberghost',
    'tunnelbear', 'protonvpn', 'windscribe', 'privatevpn', 'vpn',
)

# (indicator, pattern) checked in order against request path and user agent
MALICIOUS_PATTERNS = (
    ('directory_traversal', r'\.\.'),
    ('sql_injection', r'union.*select'),
    ('script_injection', r'<script'),
    ('code_evaluation', r'eval\('),
    ('command_injection', r'cmd='),
)

# ===============================================================================
# SCORES
# ===============================================================================

DEFAULT_SCORES = {
    # VPN
    'known_vpn_range': 60,
    'datacenter_ip': 40,
    'geo_inconsistency': 20,
    'multiple_hops': 30,
    'vpn_header': 25,
    # Proxy
    'proxy_chain_hop': 15,
    'via_header': 25,
    'cdn_header': 10,
    'known_proxy_range': 50,
    'suspicious_port': 15,
    'proxy_user_agent': 30,
    'vpn_user_agent': 40,
    # Tor
    'tor_browser_ua': 50,
    'tor_exit_node': 70,
    'tor_header': 40,
    'socks_port': 30,
    'socks_user_agent': 20,
    # Bot
    'bot_user_agent': 15,
    'missing_accept_language': 5,
    'missing_accept_encoding': 5,
    'missing_user_agent': 20,
    # Malicious
    'malicious_pattern': 60,
    # Reputation
    'blacklisted': 90,
    'abuse_listed': 40,
    'dnsbl_listed': 40,
    'known_good_discount': 50,
}

# Detection limits
MAX_FORWARDED_HOPS = 2
BOT_DETECTION_SCORE = 10
PROXY_HEADER_SCORE_LIMIT = 40


def _compile(patterns: Iterable[str]) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _as_table(value) -> PrefixTable:
    return value if isinstance(value, PrefixTable) else PrefixTable(value)


@dataclass
class ThreatRules:
    """Compiled rule set consumed by the threat collectors.

    Range fields accept any iterable of prefixes and are compiled into
    PrefixTables; ``known_bad`` holds exact addresses.
    """
    legitimate_isps: PrefixTable = field(default_factory=lambda: PrefixTable(LEGITIMATE_ISPS))
    known_vpn_ranges: PrefixTable = field(default_factory=lambda: PrefixTable(KNOWN_VPN_RANGES))
    datacenter_ranges: PrefixTable = field(default_factory=lambda: PrefixTable(DATACENTER_RANGES))
    legitimate_services: PrefixTable = field(default_factory=lambda: PrefixTable(LEGITIMATE_SERVICES))
    proxy_ranges: PrefixTable = field(default_factory=lambda: PrefixTable(PROXY_RANGES))
    tor_exit_ranges: PrefixTable = field(default_factory=lambda: PrefixTable(TOR_EXIT_RANGES))
    known_good: PrefixTable = field(default_factory=lambda: PrefixTable(KNOWN_GOOD_RANGES))
    abuse_ranges: PrefixTable = field(default_factory=PrefixTable)
    dnsbl_ranges: PrefixTable = field(default_factory=PrefixTable)
    known_bad: FrozenSet[str] = frozenset()

    vpn_headers: Tuple[str, ...] = VPN_HEADERS
    proxy_headers: Tuple[str, ...] = PROXY_HEADERS
    cdn_headers: Tuple[str, ...] = CDN_HEADERS
    tor_headers: Tuple[str, ...] = TOR_HEADERS
    suspicious_ports: Tuple[str, ...] = SUSPICIOUS_PORTS
    socks_ports: Tuple[str, ...] = SOCKS_PORTS

    bot_user_agents: Tuple[Pattern, ...] = field(default_factory=lambda: _compile(BOT_USER_AGENTS))
    proxy_user_agents: Tuple[Pattern, ...] = field(default_factory=lambda: _compile(PROXY_USER_AGENTS))
    vpn_user_agents: Tuple[Pattern, ...] = field(default_factory=lambda: _compile(VPN_USER_AGENTS))
    malicious_patterns: Tuple[Tuple[str, Pattern], ...] = field(
        default_factory=lambda: tuple((name, re.compile(p, re.IGNORECASE)) for name, p in MALICIOUS_PATTERNS)
    )

    scores: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SCORES))

    def __post_init__(self):
        for name in ('legitimate_isps', 'known_vpn_ranges', 'datacenter_ranges',
                     'legitimate_services', 'proxy_ranges', 'tor_exit_ranges',
                     'known_good', 'abuse_ranges', 'dnsbl_ranges'):
            setattr(self, name, _as_table(getattr(self, name)))
        self.known_bad = frozenset(ip.strip().lower() for ip in self.known_bad)

    def score(self, name: str) -> float:
        return self.scores.get(name, DEFAULT_SCORES.get(name, 0))

    # Range predicates

    def is_legitimate_isp(self, ip: str) -> bool:
        return ip in self.legitimate_isps

    def is_legitimate_service(self, ip: str) -> bool:
        return ip in self.legitimate_services

    def is_known_vpn_range(self, ip: str) -> bool:
        return not self.is_legitimate_isp(ip) and ip in self.known_vpn_ranges

    def is_datacenter_ip(self, ip: str) -> bool:
        if self.is_legitimate_isp(ip) or self.is_legitimate_service(ip):
            return False
        return ip in self.datacenter_ranges

    def is_known_proxy_range(self, ip: str) -> bool:
        return not self.is_legitimate_service(ip) and ip in self.proxy_ranges

    def is_tor_exit_node(self, ip: str) -> bool:
        return ip in self.tor_exit_ranges

    def is_known_good(self, ip: str) -> bool:
        return ip in self.known_good

    def is_known_bad(self, ip: str) -> bool:
        return ip.lower() in self.known_bad


DEFAULT_RULES = ThreatRules()
