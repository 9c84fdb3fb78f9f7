"""
Scan orchestrator - the two-layer decision pipeline.

sanitize -> extract URLs/domains -> threat intelligence (Layer 1) ->
short-circuit to DANGER on any hit -> Gemini contextual analysis (Layer 2).
"""

import time
from typing import List, Optional

from smells_phishy.config.logging import get_logger
from smells_phishy.core.metrics import pipeline_metrics
from smells_phishy.integrations.gemini import GeminiClient, get_gemini_client
from smells_phishy.integrations.threat_intel import (
    ThreatIntelligenceService,
    get_threat_intel_service,
)
from smells_phishy.schemas.scan import (
    Provider,
    ScanInput,
    ScanOutput,
    ThreatCheckResultSchema,
    THREAT_INTEL_SCORE,
    UrlCheckOutput,
    Verdict,
)
from smells_phishy.services.sanitizer import sanitize
from smells_phishy.services.url_extractor import (
    domains_for,
    extract_urls,
    hostname_of,
    merge_urls,
)

logger = get_logger(__name__)


class ScanOrchestrator:
    """Coordinates sanitizer, extractor and both detection layers."""

    def __init__(self, threat_intel: Optional[ThreatIntelligenceService] = None,
                 gemini: Optional[GeminiClient] = None):
        self._threat_intel = threat_intel
        self._gemini = gemini

    @property
    def threat_intel(self) -> ThreatIntelligenceService:
        return self._threat_intel or get_threat_intel_service()

    @property
    def gemini(self) -> GeminiClient:
        return self._gemini or get_gemini_client()

    async def analyze_text(self, scan_input: ScanInput) -> ScanOutput:
        """Run the full pipeline for one email."""
        start_time = time.time()

        sanitized = sanitize(scan_input.text)
        urls = merge_urls(extract_urls(sanitized.sanitized_content), scan_input.urls)
        domains = domains_for(urls)

        logger.info(
            "Scan started",
            source=scan_input.source.value,
            content_length=sanitized.original_length,
            sanitized_length=sanitized.sanitized_length,
            images_removed=sanitized.images_removed,
            encoded_blobs_removed=sanitized.encoded_blobs_removed,
            urls=len(urls),
            domains=len(domains),
        )

        # Layer 1: Threat Intelligence
        layer_start = time.time()
        report = await self.threat_intel.run_checks(urls, domains)
        pipeline_metrics.record_stage("threat_intel", time.time() - layer_start)

        if report.is_malicious:
            output = ScanOutput(
                verdict=Verdict.DANGER,
                score=THREAT_INTEL_SCORE,
                reasons=report.malicious_reasons,
                provider=Provider.THREAT_INTEL,
            )
            self._finish(output, start_time)
            return output

        # Layer 2: AI analysis
        layer_start = time.time()
        analysis = await self.gemini.analyze(sanitized.sanitized_content)
        pipeline_metrics.record_stage("ai", time.time() - layer_start)

        output = ScanOutput(
            verdict=analysis.verdict,
            score=analysis.score,
            reasons=analysis.reasons,
            provider=Provider.GEMINI,
        )
        self._finish(output, start_time, quota_exceeded=analysis.quota_exceeded)
        return output

    async def check_urls(self, urls: List[str]) -> UrlCheckOutput:
        """Layer 1 only check for a list of URLs."""
        domains = [host for host in (hostname_of(url) for url in urls) if host]
        domains = list(dict.fromkeys(domains))

        report = await self.threat_intel.run_checks(urls, domains)

        return UrlCheckOutput(
            is_malicious=report.is_malicious,
            results=[ThreatCheckResultSchema(**result.to_dict()) for result in report.results],
            reasons=report.malicious_reasons,
        )

    def _finish(self, output: ScanOutput, start_time: float, quota_exceeded: bool = False) -> None:
        duration = time.time() - start_time
        pipeline_metrics.record_scan(output.verdict.value, output.provider.value, duration)
        logger.info(
            "Scan complete",
            verdict=output.verdict.value,
            score=output.score,
            provider=output.provider.value,
            quota_exceeded=quota_exceeded,
            duration=round(duration, 3),
        )


_orchestrator: Optional[ScanOrchestrator] = None


def get_orchestrator() -> ScanOrchestrator:
    """Get global scan orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ScanOrchestrator()
    return _orchestrator
