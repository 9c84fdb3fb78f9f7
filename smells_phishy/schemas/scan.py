"""
Request and response schemas for the scan API.

Also holds the verdict vocabulary and the score thresholds shared by both
detection layers.
"""

from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from smells_phishy.config.settings import settings

SAFE_THRESHOLD = 30
DANGER_THRESHOLD = 70
THREAT_INTEL_SCORE = 95


class Verdict(str, Enum):
    """Final classification of an email."""
    SAFE = "SAFE"
    SUSPICIOUS = "SUSPICIOUS"
    DANGER = "DANGER"


class Provider(str, Enum):
    """Layer that produced the verdict."""
    THREAT_INTEL = "ThreatIntel"
    GEMINI = "Gemini"


class ScanSource(str, Enum):
    """Client that submitted the scan."""
    WEB = "web"
    EXTENSION = "extension"


def verdict_for_score(score: float) -> Verdict:
    """Map a 0-100 risk score onto a verdict: <30 SAFE, 30-70 SUSPICIOUS, >70 DANGER."""
    if score < SAFE_THRESHOLD:
        return Verdict.SAFE
    if score <= DANGER_THRESHOLD:
        return Verdict.SUSPICIOUS
    return Verdict.DANGER


class ScanInput(BaseModel):
    """Email content submitted for a full two-layer scan."""
    text: str = Field(..., min_length=1, max_length=settings.MAX_EMAIL_CONTENT_LENGTH)
    urls: Optional[List[str]] = None
    source: ScanSource = ScanSource.WEB


class ScanOutput(BaseModel):
    """Verdict of a full scan."""
    verdict: Verdict
    score: int = Field(..., ge=0, le=100)
    reasons: List[str]
    provider: Provider


class UrlCheckInput(BaseModel):
    """URLs submitted for a Layer 1 only check."""
    urls: List[str] = Field(..., min_length=1, max_length=settings.MAX_CHECK_URLS)

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v: List[str]) -> List[str]:
        """Every entry must be an absolute URL."""
        for url in v:
            try:
                parsed = urlparse(url)
            except ValueError:
                raise ValueError(f"Invalid URL: {url}")
            if not parsed.scheme or not parsed.netloc:
                raise ValueError(f"Invalid URL: {url}")
        return v


class ThreatCheckResultSchema(BaseModel):
    """One provider's answer."""
    provider: str
    status: str
    details: Optional[str] = None
    matched_urls: List[str] = []


class UrlCheckOutput(BaseModel):
    """Result of a Layer 1 only check."""
    is_malicious: bool
    results: List[ThreatCheckResultSchema]
    reasons: List[str]


class QuotaStatus(BaseModel):
    """Remaining AI classifier capacity."""
    daily_remaining: int
    minute_remaining: int
    daily_limit: int
