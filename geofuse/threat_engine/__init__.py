"""Threat Detection Package

Heuristic collectors (VPN, proxy, Tor, bot, reputation, malicious request
patterns) over static rule tables, and the engine fusing them into a risk
assessment.
"""

from .prefix_table import PrefixTable
from .rules import ThreatRules, DEFAULT_RULES
from .collectors import check_vpn, check_proxy, check_tor, check_bot, check_malicious
from .reputation import check_reputation
from .fusion import ThreatEngine, COLLECTORS, create_threat_engine

__all__ = [
    'PrefixTable',
    'ThreatRules',
    'DEFAULT_RULES',
    'check_vpn',
    'check_proxy',
    'check_tor',
    'check_bot',
    'check_reputation',
    'check_malicious',
    'ThreatEngine',
    'COLLECTORS',
    'create_threat_engine',
]
