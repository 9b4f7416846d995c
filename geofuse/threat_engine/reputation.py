"""IP reputation collector and its sub-checks"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..geo_core.models import Reputation, RequestContext, ThreatSignal
from ..geo_core.utils import is_private_ip
from .rules import ThreatRules

logger = logging.getLogger(__name__)

REPUTATION_SOURCE = "enhanced_reputation_check"


@dataclass
class ReputationVerdict:
    """One sub-check's opinion about an address"""
    verdict: Reputation = Reputation.UNKNOWN
    score: float = 0
    source: Optional[str] = None


async def check_internal_blacklist(ip: str, rules: ThreatRules) -> ReputationVerdict:
    if rules.is_known_bad(ip):
        return ReputationVerdict(Reputation.MALICIOUS, rules.score('blacklisted'), 'internal_blacklist')
    return ReputationVerdict()


async def check_threat_intelligence(ip: str, rules: ThreatRules) -> ReputationVerdict:
    # Private space is never a threat
    if is_private_ip(ip):
        return ReputationVerdict(Reputation.GOOD, 0, 'threat_intelligence')
    return ReputationVerdict()


async def check_abuse_database(ip: str, rules: ThreatRules) -> ReputationVerdict:
    if ip in rules.abuse_ranges:
        return ReputationVerdict(Reputation.SUSPICIOUS, rules.score('abuse_listed'), 'abuse_database')
    return ReputationVerdict()


async def check_dns_blacklist(ip: str, rules: ThreatRules) -> ReputationVerdict:
    if ip in rules.dnsbl_ranges:
        return ReputationVerdict(Reputation.SUSPICIOUS, rules.score('dnsbl_listed'), 'dns_blacklist')
    return ReputationVerdict()


SUB_CHECKS = (
    ('internal', check_internal_blacklist),
    ('threat_intel', check_threat_intelligence),
    ('abuse_db', check_abuse_database),
    ('dns_bl', check_dns_blacklist),
)


async def check_reputation(ip: str, context: Optional[RequestContext], rules: ThreatRules) -> ThreatSignal:
    """Combine the sub-checks: malicious > suspicious > good > unknown.

    Malicious and suspicious verdicts add their scores. A known-good
    address always ends up "good" with 50 points taken off, never below 0.
    """
    results = await asyncio.gather(*(check(ip, rules) for _, check in SUB_CHECKS), return_exceptions=True)

    reputation = Reputation.UNKNOWN
    score = 0
    indicators = []
    sources = []

    for (name, _), result in zip(SUB_CHECKS, results):
        if isinstance(result, BaseException):
            logger.warning(f"Reputation sub-check {name} failed for {ip}: {result}")
            continue
        if result.verdict is Reputation.UNKNOWN:
            continue

        if result.verdict.rank > reputation.rank:
            reputation = result.verdict
        if result.verdict in (Reputation.MALICIOUS, Reputation.SUSPICIOUS):
            score += result.score
            indicators.append(f'{name}_{result.verdict.value}')
        sources.append(result.source or name)

    if rules.is_known_good(ip):
        reputation = Reputation.GOOD
        score = max(0, score - rules.score('known_good_discount'))
        indicators.append('known_good_ip')
        sources.append('internal_whitelist')

    return ThreatSignal(
        detected=reputation is Reputation.MALICIOUS,
        risk_score=score,
        indicators=indicators,
        source=REPUTATION_SOURCE,
        reputation=reputation,
        sources=sources,
    )
