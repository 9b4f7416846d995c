"""
Risk Fusion Engine

Runs the threat collectors concurrently and folds their signals into one
ThreatAssessment. A failing collector is replaced by a neutral signal; an
unexpected failure of the fusion itself yields a degraded (minimal risk)
assessment instead of an exception.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..geo_core.config import GeoFuseConfig
from ..geo_core.constants import DEFAULT_SIGNAL_WEIGHT
from ..geo_core.models import RequestContext, RiskLevel, ThreatAssessment, ThreatSignal
from ..geo_core.utils import require_valid_ip
from .collectors import check_bot, check_malicious, check_proxy, check_tor, check_vpn
from .reputation import check_reputation
from .rules import DEFAULT_RULES, ThreatRules

logger = logging.getLogger(__name__)

# Order matters: threat names are reported in this order
COLLECTORS: Tuple[Tuple[str, Callable], ...] = (
    ('vpn', check_vpn),
    ('proxy', check_proxy),
    ('tor', check_tor),
    ('bot', check_bot),
    ('reputation', check_reputation),
    ('malicious', check_malicious),
)

FLAG_ATTRIBUTES = {
    'vpn': 'is_vpn',
    'proxy': 'is_proxy',
    'tor': 'is_tor',
    'bot': 'is_bot',
    'malicious': 'is_malicious',
}

DEGRADED_MESSAGE = "Threat detection partially unavailable"


class ThreatEngine:
    """Heuristic VPN/proxy/Tor/bot/reputation/malicious-request risk scoring"""

    def __init__(self, config: Optional[GeoFuseConfig] = None, rules: Optional[ThreatRules] = None,
                 collectors: Sequence[Tuple[str, Callable]] = COLLECTORS):
        self.config = config or GeoFuseConfig()
        self.rules = rules or DEFAULT_RULES
        self.collectors = tuple(collectors)

    @property
    def weights(self) -> Dict[str, float]:
        return self.config.risk_weights

    @property
    def thresholds(self) -> Dict[str, float]:
        return self.config.risk_thresholds

    def enabled_collectors(self) -> List[Tuple[str, Callable]]:
        toggles = self.config.threat_detection
        return [(name, check) for name, check in self.collectors if toggles.get(name, True)]

    def classify_risk(self, score: float) -> RiskLevel:
        """Map a fused score onto a risk level (lower bounds inclusive)"""
        if score >= self.thresholds['high']:
            return RiskLevel.HIGH
        if score >= self.thresholds['medium']:
            return RiskLevel.MEDIUM
        if score >= self.thresholds['low']:
            return RiskLevel.LOW
        return RiskLevel.MINIMAL

    async def _run(self, check: Callable, ip: str, context: Optional[RequestContext]) -> ThreatSignal:
        return await asyncio.wait_for(check(ip, context, self.rules), timeout=self.config.threat_timeout)

    async def assess(self, ip: str, context: Optional[RequestContext] = None) -> ThreatAssessment:
        """Fused threat assessment for ``ip``.

        Raises InvalidInputError for a malformed address; every other
        failure is reported through the assessment's ``error`` field.
        """
        ip = require_valid_ip(ip)
        try:
            return await self._assess(ip, context)
        except Exception as e:
            logger.error(f"Threat assessment failed for {ip}: {e}")
            return ThreatAssessment.degraded(ip, DEGRADED_MESSAGE)

    async def _assess(self, ip: str, context: Optional[RequestContext]) -> ThreatAssessment:
        collectors = self.enabled_collectors()
        results = await asyncio.gather(
            *(self._run(check, ip, context) for _, check in collectors),
            return_exceptions=True,
        )

        assessment = ThreatAssessment(ip=ip)
        score = 0

        for (name, _), signal in zip(collectors, results):
            if isinstance(signal, BaseException):
                if not isinstance(signal, Exception):
                    raise signal
                logger.warning(f"Threat check {name} failed for {ip}: {signal!r}")
                signal = ThreatSignal.neutral(error=str(signal) or signal.__class__.__name__)

            if signal.detected:
                assessment.threats.append(name)
                score += self.weights.get(name) or signal.risk_score or DEFAULT_SIGNAL_WEIGHT

            if name in FLAG_ATTRIBUTES:
                setattr(assessment, FLAG_ATTRIBUTES[name], signal.detected)
            elif name == 'reputation' and signal.reputation is not None:
                assessment.reputation = signal.reputation

            if signal.source:
                assessment.sources.append(signal.source)

        assessment.risk_score = max(0, score)
        assessment.risk_level = self.classify_risk(assessment.risk_score)

        logger.debug(f"Threat assessment for {ip}: score={assessment.risk_score} "
                     f"level={assessment.risk_level.value} threats={assessment.threats}")
        return assessment


def create_threat_engine(config: Optional[GeoFuseConfig] = None,
                         rules: Optional[ThreatRules] = None) -> ThreatEngine:
    """Create a threat engine using the default rule tables"""
    return ThreatEngine(config or GeoFuseConfig(), rules)
