"""
Unit tests for the two-layer scan pipeline.
Both layers are replaced by mocks so the decision logic is tested in isolation.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from smells_phishy.integrations.gemini import GeminiAnalysisResult
from smells_phishy.integrations.threat_intel import (
    ThreatCheckResult,
    ThreatIntelReport,
    ThreatStatus,
)
from smells_phishy.orchestrator import ScanOrchestrator
from smells_phishy.schemas.scan import Provider, ScanInput, Verdict


def _clean_report():
    return ThreatIntelReport(
        is_malicious=False,
        results=[
            ThreatCheckResult("Google Safe Browsing", ThreatStatus.SAFE),
            ThreatCheckResult("PhishTank", ThreatStatus.SAFE),
            ThreatCheckResult("urlscan.io", ThreatStatus.UNKNOWN, "API key not configured"),
        ],
    )


def _malicious_report():
    hit = ThreatCheckResult(
        "Google Safe Browsing", ThreatStatus.MALICIOUS,
        "Flagged as: SOCIAL_ENGINEERING", ["http://paypa1.tk/login"],
    )
    return ThreatIntelReport(is_malicious=True, results=[hit], malicious_reasons=[hit.reason()])


@pytest.fixture
def threat_intel():
    service = MagicMock()
    service.run_checks = AsyncMock(return_value=_clean_report())
    return service


@pytest.fixture
def gemini():
    client = MagicMock()
    client.analyze = AsyncMock(return_value=GeminiAnalysisResult(
        score=22, verdict=Verdict.SAFE, reasons=["Personal greeting"], summary="Benign",
    ))
    return client


@pytest.fixture
def orchestrator(threat_intel, gemini):
    return ScanOrchestrator(threat_intel=threat_intel, gemini=gemini)


class TestAnalyzeText:

    @pytest.mark.asyncio
    async def test_threat_intel_hit_short_circuits(self, orchestrator, threat_intel, gemini):
        threat_intel.run_checks.return_value = _malicious_report()

        output = await orchestrator.analyze_text(
            ScanInput(text="Verify your account at http://paypa1.tk/login now")
        )

        assert output.verdict == Verdict.DANGER
        assert output.score == 95
        assert output.provider == Provider.THREAT_INTEL
        assert output.reasons == [
            "Google Safe Browsing: Flagged as: SOCIAL_ENGINEERING (http://paypa1.tk/login)"
        ]
        gemini.analyze.assert_not_called()

    @pytest.mark.asyncio
    async def test_clean_links_fall_through_to_gemini(self, orchestrator, threat_intel, gemini):
        output = await orchestrator.analyze_text(
            ScanInput(text="Hi Sam, notes are at https://docs.example.com/notes")
        )

        assert output.verdict == Verdict.SAFE
        assert output.score == 22
        assert output.reasons == ["Personal greeting"]
        assert output.provider == Provider.GEMINI
        threat_intel.run_checks.assert_awaited_once_with(
            ["https://docs.example.com/notes"], ["docs.example.com"]
        )

    @pytest.mark.asyncio
    async def test_gemini_receives_sanitized_content(self, orchestrator, gemini):
        text = "  Invoice attached <img src=\"data:image/png;base64,AAAABBBB\">  "
        await orchestrator.analyze_text(ScanInput(text=text))

        gemini.analyze.assert_awaited_once_with('Invoice attached <img src="[IMAGE REMOVED]">')

    @pytest.mark.asyncio
    async def test_caller_urls_are_merged(self, orchestrator, threat_intel):
        await orchestrator.analyze_text(ScanInput(
            text="Click https://a.example.com/x",
            urls=["https://b.example.org/y", "https://a.example.com/x"],
            source="extension",
        ))

        threat_intel.run_checks.assert_awaited_once_with(
            ["https://a.example.com/x", "https://b.example.org/y"],
            ["a.example.com", "b.example.org"],
        )

    @pytest.mark.asyncio
    async def test_no_urls_still_runs_both_layers(self, orchestrator, threat_intel, gemini):
        gemini.analyze.return_value = GeminiAnalysisResult(
            score=50, verdict=Verdict.SUSPICIOUS, reasons=["Daily AI analysis limit reached. Try again tomorrow."],
            quota_exceeded=True,
        )

        output = await orchestrator.analyze_text(ScanInput(text="Please wire the money today."))

        threat_intel.run_checks.assert_awaited_once_with([], [])
        assert output.verdict == Verdict.SUSPICIOUS
        assert output.score == 50
        assert output.provider == Provider.GEMINI


class TestCheckUrls:

    @pytest.mark.asyncio
    async def test_layer_one_only(self, orchestrator, threat_intel, gemini):
        result = await orchestrator.check_urls(["https://Example.com/a", "https://example.com/b"])

        threat_intel.run_checks.assert_awaited_once_with(
            ["https://Example.com/a", "https://example.com/b"], ["example.com"]
        )
        gemini.analyze.assert_not_called()
        assert result.is_malicious is False
        assert [r.provider for r in result.results] == ["Google Safe Browsing", "PhishTank", "urlscan.io"]
        assert result.results[2].status == "UNKNOWN"
        assert result.reasons == []

    @pytest.mark.asyncio
    async def test_malicious(self, orchestrator, threat_intel):
        threat_intel.run_checks.return_value = _malicious_report()

        result = await orchestrator.check_urls(["http://paypa1.tk/login"])

        assert result.is_malicious is True
        assert result.results[0].matched_urls == ["http://paypa1.tk/login"]
        assert len(result.reasons) == 1
