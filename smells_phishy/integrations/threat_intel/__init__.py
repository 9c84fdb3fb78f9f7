"""
Threat Intelligence Integration Package.

Layer 1 of the scan pipeline: reputation lookups against Google Safe Browsing,
PhishTank and urlscan.io.
"""

from .base import (
    ThreatIntelligenceAdapter,
    ThreatCheckResult,
    ThreatIntelReport,
    ThreatStatus,
    APIStatus,
    AdapterError,
    HTTPStatusError,
    QuotaExceededError,
    RateLimitError,
    RequestTimeoutError,
    UnauthorizedError,
)

from .safe_browsing import SafeBrowsingClient
from .phishtank import PhishTankClient
from .urlscan import UrlscanClient
from .aggregator import (
    ThreatIntelligenceService,
    get_threat_intel_service,
    run_threat_intelligence_checks,
)

__all__ = [
    # Base classes and result types
    'ThreatIntelligenceAdapter',
    'ThreatCheckResult',
    'ThreatIntelReport',
    'ThreatStatus',
    'APIStatus',

    # Exceptions
    'AdapterError',
    'HTTPStatusError',
    'QuotaExceededError',
    'RateLimitError',
    'RequestTimeoutError',
    'UnauthorizedError',

    # Client implementations
    'SafeBrowsingClient',
    'PhishTankClient',
    'UrlscanClient',

    # Aggregation
    'ThreatIntelligenceService',
    'get_threat_intel_service',
    'run_threat_intelligence_checks',
]
