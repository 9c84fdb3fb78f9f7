from .scan import (
    Verdict,
    Provider,
    ScanSource,
    verdict_for_score,
    ScanInput,
    ScanOutput,
    UrlCheckInput,
    UrlCheckOutput,
    ThreatCheckResultSchema,
    QuotaStatus,
    SAFE_THRESHOLD,
    DANGER_THRESHOLD,
    THREAT_INTEL_SCORE,
)

__all__ = [
    "Verdict",
    "Provider",
    "ScanSource",
    "verdict_for_score",
    "ScanInput",
    "ScanOutput",
    "UrlCheckInput",
    "UrlCheckOutput",
    "ThreatCheckResultSchema",
    "QuotaStatus",
    "SAFE_THRESHOLD",
    "DANGER_THRESHOLD",
    "THREAT_INTEL_SCORE",
]
