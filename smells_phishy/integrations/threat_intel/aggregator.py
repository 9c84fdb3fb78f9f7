"""
Layer 1 aggregation across threat intelligence providers.

Providers are asked in a fixed order and the run stops at the first one that
flags something, so a known-bad link never costs more lookups than needed.
With short-circuiting disabled all providers are queried concurrently.
"""

import asyncio
import time
from typing import List, Optional, Sequence

from smells_phishy.config.logging import get_logger
from smells_phishy.config.settings import Settings, get_settings
from smells_phishy.core.metrics import pipeline_metrics

from .base import ThreatCheckResult, ThreatIntelReport, ThreatIntelligenceAdapter, ThreatStatus
from .phishtank import PhishTankClient
from .safe_browsing import SafeBrowsingClient
from .urlscan import UrlscanClient

logger = get_logger(__name__)


class ThreatIntelligenceService:
    """Runs the configured adapters and folds their results into one report."""

    def __init__(self, adapters: Sequence[ThreatIntelligenceAdapter], short_circuit: bool = True):
        self.adapters = list(adapters)
        self.short_circuit = short_circuit

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ThreatIntelligenceService":
        settings = settings or get_settings()
        timeout = settings.THREAT_INTEL_TIMEOUT
        adapters = [
            SafeBrowsingClient(settings.GOOGLE_SAFE_BROWSING_API_KEY, timeout=timeout),
            PhishTankClient(settings.PHISHTANK_API_KEY, timeout=timeout,
                            max_lookups=settings.THREAT_INTEL_MAX_LOOKUPS),
            UrlscanClient(settings.URLSCAN_API_KEY, timeout=timeout,
                          max_lookups=settings.THREAT_INTEL_MAX_LOOKUPS),
        ]
        return cls(adapters, short_circuit=settings.THREAT_INTEL_SHORT_CIRCUIT)

    async def _safe_check(self, adapter: ThreatIntelligenceAdapter,
                          urls: List[str], domains: List[str]) -> ThreatCheckResult:
        """Run one adapter; an unexpected exception becomes an ERROR result."""
        try:
            result = await adapter.check(urls, domains)
        except Exception as e:
            logger.error("Threat intelligence adapter raised", provider=adapter.name,
                         error=str(e), exc_info=True)
            result = ThreatCheckResult(
                provider=adapter.provider_name,
                status=ThreatStatus.ERROR,
                details=str(e) or "Check failed",
            )
        pipeline_metrics.record_threat_intel_result(adapter.name, result.status.value)
        return result

    async def run_checks(self, urls: List[str], domains: List[str]) -> ThreatIntelReport:
        """Query providers and build the aggregated Layer 1 report."""
        start_time = time.time()

        if self.short_circuit:
            results = []
            for adapter in self.adapters:
                result = await self._safe_check(adapter, urls, domains)
                results.append(result)
                if result.is_malicious:
                    break
        else:
            results = list(await asyncio.gather(
                *(self._safe_check(adapter, urls, domains) for adapter in self.adapters)
            ))

        reasons = [result.reason() for result in results if result.is_malicious]
        duration = time.time() - start_time

        logger.info(
            "Threat intelligence checks complete",
            urls=len(urls),
            domains=len(domains),
            providers_queried=len(results),
            malicious=bool(reasons),
            duration=round(duration, 3),
        )

        return ThreatIntelReport(
            is_malicious=bool(reasons),
            results=results,
            malicious_reasons=reasons,
            duration=duration,
        )

    async def close(self):
        for adapter in self.adapters:
            await adapter.close()


_threat_intel_service: Optional[ThreatIntelligenceService] = None


def get_threat_intel_service() -> ThreatIntelligenceService:
    """Get global threat intelligence service instance."""
    global _threat_intel_service
    if _threat_intel_service is None:
        _threat_intel_service = ThreatIntelligenceService.from_settings()
    return _threat_intel_service


async def run_threat_intelligence_checks(urls: List[str], domains: List[str]) -> ThreatIntelReport:
    """Run all Layer 1 checks with the global service."""
    return await get_threat_intel_service().run_checks(urls, domains)
