"""
Threat Signal Collectors

Each collector inspects the address and the originating request and
returns one ThreatSignal. All collectors share the signature
``async (ip, context, rules) -> ThreatSignal`` so the fusion engine can
run them side by side.
"""

import logging
import re
from typing import List, Optional, Tuple

from ..geo_core.models import RequestContext, ThreatSignal
from .rules import (
    BOT_DETECTION_SCORE, MAX_FORWARDED_HOPS, PROXY_HEADER_SCORE_LIMIT, ThreatRules,
)

logger = logging.getLogger(__name__)

VPN_SOURCE = "enhanced_vpn_check"
PROXY_SOURCE = "enhanced_proxy_check"
TOR_SOURCE = "enhanced_tor_check"
BOT_SOURCE = "internal_bot_check"
MALICIOUS_SOURCE = "internal_malicious_check"

LANGUAGE_REGION_PATTERN = re.compile(r'^\s*[a-z]{2,3}[-_]([a-z]{2})\b', re.IGNORECASE)


def _forwarded_chain(context: RequestContext) -> List[str]:
    value = context.header('x-forwarded-for')
    if not value:
        return []
    return [hop.strip() for hop in value.split(',') if hop.strip()]


def _host_port(context: RequestContext, ports) -> Optional[str]:
    host = context.header('host', '')
    for port in ports:
        if f':{port}' in host:
            return port
    return None


def accept_language_region(value: Optional[str]) -> Optional[str]:
    """Region of the preferred Accept-Language tag ("en-US,en;q=0.9" -> "US")"""
    if not value:
        return None
    match = LANGUAGE_REGION_PATTERN.match(value.split(',', 1)[0])
    return match.group(1).upper() if match else None


def _geo_inconsistent(context: RequestContext) -> bool:
    region = accept_language_region(context.header('accept-language'))
    country = (context.header('cf-ipcountry') or '').strip().upper()
    if not region or len(country) != 2 or country in ('XX', 'T1'):
        return False
    return region != country


# ===============================================================================
# VPN
# ===============================================================================

async def check_vpn(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    context = context or RequestContext()

    # Allowlisted networks are never reported as VPN
    if rules.is_legitimate_isp(ip):
        return ThreatSignal(detected=False, risk_score=0, indicators=['legitimate_isp'], source=VPN_SOURCE)
    if rules.is_legitimate_service(ip):
        return ThreatSignal(detected=False, risk_score=0, indicators=['legitimate_service'], source=VPN_SOURCE)

    detected = False
    score = 0
    indicators = []

    if rules.is_known_vpn_range(ip):
        detected = True
        score += rules.score('known_vpn_range')
        indicators.append('known_vpn_range')

    if rules.is_datacenter_ip(ip):
        detected = True
        score += rules.score('datacenter_ip')
        indicators.append('datacenter_ip')

    # Locale mismatch alone is too weak to call a VPN
    if _geo_inconsistent(context):
        score += rules.score('geo_inconsistency')
        indicators.append('geo_inconsistency')

    if len(_forwarded_chain(context)) > MAX_FORWARDED_HOPS:
        detected = True
        score += rules.score('multiple_hops')
        indicators.append('multiple_hops')

    for header in rules.vpn_headers:
        if context.has_header(header):
            detected = True
            score += rules.score('vpn_header')
            indicators.append(f'vpn_header_{header}')

    return ThreatSignal(detected=detected, risk_score=score, indicators=indicators, source=VPN_SOURCE)


# ===============================================================================
# PROXY
# ===============================================================================

def analyze_proxy_headers(context: RequestContext, rules: ThreatRules) -> Tuple[bool, float, List[str]]:
    """Score forwarding headers; returns (fired, score, indicators).

    CDN headers add score but are counted apart from generic proxy
    headers. A request carrying CDN headers only is ordinary traffic
    behind the CDN and scores zero.
    """
    score = 0
    indicators = []
    proxy_count = 0
    cdn_count = 0

    for header in rules.proxy_headers:
        value = context.header(header)
        if not value:
            continue
        proxy_count += 1
        indicators.append(f'proxy_header_{header}')

        if header == 'x-forwarded-for':
            hops = _forwarded_chain(context)
            if len(hops) > 1:
                score += len(hops) * rules.score('proxy_chain_hop')
                indicators.append(f'proxy_chain_{len(hops)}_hops')
        elif header == 'via':
            score += rules.score('via_header')
            indicators.append('via_header_present')

    for header in rules.cdn_headers:
        if context.has_header(header):
            cdn_count += 1
            score += rules.score('cdn_header')
            indicators.append(f'cdn_header_{header}')

    if cdn_count and not proxy_count:
        return False, 0, indicators

    fired = proxy_count > 2 or (proxy_count > 1 and score > PROXY_HEADER_SCORE_LIMIT)
    return fired, score, indicators


async def check_proxy(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    context = context or RequestContext()

    if rules.is_legitimate_isp(ip) or rules.is_legitimate_service(ip):
        return ThreatSignal(detected=False, risk_score=0, indicators=['legitimate_service'], source=PROXY_SOURCE)

    detected = False
    score = 0
    indicators = []

    fired, header_score, header_indicators = analyze_proxy_headers(context, rules)
    if fired:
        detected = True
        score += header_score
        indicators.extend(header_indicators)

    if rules.is_known_proxy_range(ip):
        detected = True
        score += rules.score('known_proxy_range')
        indicators.append('known_proxy_range')

    if _host_port(context, rules.suspicious_ports):
        score += rules.score('suspicious_port')
        indicators.append('suspicious_ports')

    user_agent = context.user_agent
    if user_agent:
        if any(p.search(user_agent) for p in rules.proxy_user_agents):
            detected = True
            score += rules.score('proxy_user_agent')
            indicators.append('proxy_user_agent')
        if any(p.search(user_agent) for p in rules.vpn_user_agents):
            detected = True
            score += rules.score('vpn_user_agent')
            indicators.append('vpn_user_agent')

    return ThreatSignal(detected=detected, risk_score=score, indicators=indicators, source=PROXY_SOURCE)


# ===============================================================================
# TOR
# ===============================================================================

async def check_tor(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    context = context or RequestContext()
    user_agent = context.user_agent

    detected = False
    score = 0
    indicators = []

    if 'Tor Browser' in user_agent:
        detected = True
        score += rules.score('tor_browser_ua')
        indicators.append('tor_browser_ua')

    if rules.is_tor_exit_node(ip):
        detected = True
        score += rules.score('tor_exit_node')
        indicators.append('tor_exit_node')

    for header in rules.tor_headers:
        if context.has_header(header):
            detected = True
            score += rules.score('tor_header')
            indicators.append(f'tor_header_{header}')

    # A SOCKS port raises the score without deciding detection; the user
    # agent hint only counts alongside the port
    if _host_port(context, rules.socks_ports):
        score += rules.score('socks_port')
        if 'SOCKS' in user_agent or 'Proxy' in user_agent:
            score += rules.score('socks_user_agent')
        indicators.append('socks_proxy_pattern')

    return ThreatSignal(detected=detected, risk_score=score, indicators=indicators, source=TOR_SOURCE)


# ===============================================================================
# BOT
# ===============================================================================

async def check_bot(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    context = context or RequestContext()
    user_agent = context.user_agent

    detected = False
    score = 0
    indicators = []

    if user_agent and any(p.search(user_agent) for p in rules.bot_user_agents):
        detected = True
        score += rules.score('bot_user_agent')
        indicators.append('bot_user_agent')

    if not context.has_header('accept-language'):
        score += rules.score('missing_accept_language')
        indicators.append('missing_accept_language')
    if not context.has_header('accept-encoding'):
        score += rules.score('missing_accept_encoding')
        indicators.append('missing_accept_encoding')
    if not user_agent:
        score += rules.score('missing_user_agent')
        indicators.append('missing_user_agent')

    if score > BOT_DETECTION_SCORE:
        detected = True

    return ThreatSignal(detected=detected, risk_score=score, indicators=indicators, source=BOT_SOURCE)


# ===============================================================================
# MALICIOUS REQUEST PATTERNS
# ===============================================================================

async def check_malicious(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    context = context or RequestContext()
    path = context.path or ''
    user_agent = context.user_agent

    for name, pattern in rules.malicious_patterns:
        if pattern.search(path) or pattern.search(user_agent):
            logger.info(f"Malicious request pattern '{name}' from {ip}")
            return ThreatSignal(
                detected=True,
                risk_score=rules.score('malicious_pattern'),
                indicators=[name],
                source=MALICIOUS_SOURCE,
            )

    return ThreatSignal(detected=False, risk_score=0, indicators=[], source=MALICIOUS_SOURCE)
