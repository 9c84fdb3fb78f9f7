"""Unit tests for the command line interface."""

import json
import sys

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from smells_phishy import cli
from smells_phishy.config.logging import configure_logging
from smells_phishy.config.settings import settings
from smells_phishy.integrations.gemini import GeminiAnalysisResult
from smells_phishy.integrations.threat_intel import ThreatIntelReport
from smells_phishy.schemas.scan import Provider, ScanOutput, UrlCheckOutput, Verdict


@pytest.fixture(autouse=True)
def restore_log_stream(capsys):
    """The CLI points the log handler at the captured stderr; undo that before capture ends."""
    yield
    # pytest closes the captured stream after the call phase; drop it without flushing
    from smells_phishy.config import logging as logging_config
    if logging_config._handler is not None:
        logging_config._handler.stream = sys.__stderr__
    configure_logging(log_level="ERROR", log_format="console", stream=sys.__stderr__)


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.analyze_text = AsyncMock(return_value=ScanOutput(
        verdict=Verdict.SUSPICIOUS, score=55, reasons=["Generic greeting"], provider=Provider.GEMINI,
    ))
    mock.check_urls = AsyncMock(return_value=UrlCheckOutput(
        is_malicious=True, results=[], reasons=["PhishTank: URL found in PhishTank database (http://bad.tk)"],
    ))
    mock.threat_intel.close = AsyncMock()
    mock.gemini.close = AsyncMock()
    return mock


class TestParser:

    def test_scan_with_urls(self):
        args = cli.create_parser().parse_args(
            ["scan", "mail.txt", "--url", "https://a.com", "--url", "https://b.com"]
        )
        assert args.command == "scan"
        assert args.file == "mail.txt"
        assert args.url == ["https://a.com", "https://b.com"]

    def test_server_defaults(self):
        args = cli.create_parser().parse_args(["server"])
        assert (args.host, args.port, args.reload) == ("localhost", 8000, False)


class TestCommands:

    def test_scan_file(self, tmp_path, capsys, orchestrator):
        email = tmp_path / "mail.txt"
        email.write_text("Dear customer, confirm your details")

        with patch("smells_phishy.orchestrator.ScanOrchestrator", return_value=orchestrator):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["scan", str(email)])

        assert exc_info.value.code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["verdict"] == "SUSPICIOUS"
        assert output["provider"] == "Gemini"
        scan_input = orchestrator.analyze_text.call_args.args[0]
        assert scan_input.text == "Dear customer, confirm your details"
        orchestrator.gemini.close.assert_awaited_once()

    def test_check_urls_exit_code_reflects_verdict(self, orchestrator):
        with patch("smells_phishy.orchestrator.ScanOrchestrator", return_value=orchestrator):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["check-urls", "http://bad.tk"])

        assert exc_info.value.code == 1
        orchestrator.check_urls.assert_awaited_once_with(["http://bad.tk"])

    def test_invalid_url_is_reported(self, capsys, orchestrator):
        with patch("smells_phishy.orchestrator.ScanOrchestrator", return_value=orchestrator):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["check-urls", "not-a-url"])

        assert exc_info.value.code == 1
        assert "Invalid URL" in capsys.readouterr().err
        orchestrator.check_urls.assert_not_called()

    def test_missing_file(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["scan", "/nonexistent/mail.txt"])

        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err

    def test_config(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["config"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "google_safe_browsing" in out
        assert "10 per 3600s" in out

    def test_scan_stdout_stays_json_with_info_logging(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setattr(settings, "LOG_LEVEL", "INFO")

        threat_intel = MagicMock()
        threat_intel.run_checks = AsyncMock(return_value=ThreatIntelReport(is_malicious=False))
        threat_intel.close = AsyncMock()
        gemini = MagicMock()
        gemini.analyze = AsyncMock(return_value=GeminiAnalysisResult(
            score=15, verdict=Verdict.SAFE, reasons=["Routine notice"],
        ))
        gemini.close = AsyncMock()
        monkeypatch.setattr(
            "smells_phishy.orchestrator.scan_orchestrator.get_threat_intel_service", lambda: threat_intel
        )
        monkeypatch.setattr(
            "smells_phishy.orchestrator.scan_orchestrator.get_gemini_client", lambda: gemini
        )

        email = tmp_path / "mail.txt"
        email.write_text("Dear user, your parcel is waiting at https://parcel.example.com")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["scan", str(email)])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        output = json.loads(captured.out)
        assert output == {
            "verdict": "SAFE",
            "score": 15,
            "reasons": ["Routine notice"],
            "provider": "Gemini",
        }
        assert "Scan started" in captured.err
        assert "Scan complete" in captured.err
