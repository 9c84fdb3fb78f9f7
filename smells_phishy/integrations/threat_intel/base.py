"""
Base classes and interfaces for threat intelligence adapters.

This module defines the common result types, error hierarchy and the adapter
template every reputation provider (Safe Browsing, PhishTank, urlscan.io)
builds on.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp

from smells_phishy.config.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "SmellsPhishy-ThreatIntel/1.0"


class ThreatStatus(str, Enum):
    """Outcome of a single provider check."""
    SAFE = "SAFE"
    MALICIOUS = "MALICIOUS"
    UNKNOWN = "UNKNOWN"
    ERROR = "ERROR"


class APIStatus(Enum):
    """Status of external API calls."""
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    ERROR = "error"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAUTHORIZED = "unauthorized"


@dataclass
class ThreatCheckResult:
    """Normalized verdict from one threat intelligence provider."""
    provider: str
    status: ThreatStatus
    details: Optional[str] = None
    matched_urls: List[str] = field(default_factory=list)

    @property
    def is_malicious(self) -> bool:
        return self.status == ThreatStatus.MALICIOUS

    def reason(self) -> str:
        """Human readable reason line for a malicious result."""
        matched = ", ".join(self.matched_urls) if self.matched_urls else "unknown"
        return f"{self.provider}: {self.details or 'Threat detected'} ({matched})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "status": self.status.value,
            "details": self.details,
            "matched_urls": list(self.matched_urls),
        }


@dataclass
class ThreatIntelReport:
    """Aggregated result of a Layer 1 run."""
    is_malicious: bool
    results: List[ThreatCheckResult] = field(default_factory=list)
    malicious_reasons: List[str] = field(default_factory=list)
    duration: Optional[float] = None


class AdapterError(Exception):
    """Base exception for adapter errors."""
    def __init__(self, message: str, status: APIStatus, retry_after: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class HTTPStatusError(AdapterError):
    """Raised when a provider answers with a non-2xx status."""
    def __init__(self, message: str, status_code: int,
                 status: APIStatus = APIStatus.ERROR, retry_after: Optional[int] = None):
        super().__init__(message, status, retry_after)
        self.status_code = status_code


class UnauthorizedError(HTTPStatusError):
    """Raised when API key is invalid or unauthorized."""
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code, APIStatus.UNAUTHORIZED)


class RateLimitError(HTTPStatusError):
    """Raised when the provider's rate limit is hit."""
    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, 429, APIStatus.RATE_LIMITED, retry_after)


class QuotaExceededError(AdapterError):
    """Raised when a local API quota is exceeded."""
    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, APIStatus.QUOTA_EXCEEDED, retry_after)


class RequestTimeoutError(AdapterError):
    """Raised when API call times out."""
    def __init__(self, message: str):
        super().__init__(message, APIStatus.TIMEOUT)


class ThreatIntelligenceAdapter(ABC):
    """
    Abstract base class for all threat intelligence adapters.

    Subclasses implement ``_check`` against their provider. ``check`` wraps it
    so that callers always receive a ``ThreatCheckResult`` and never an
    exception: empty input is SAFE, a missing key is UNKNOWN and every
    transport or protocol failure is ERROR.
    """

    #: Display name used in results and reasons
    provider_name: str = "Unknown"
    #: Whether the provider refuses anonymous calls
    requires_api_key: bool = True

    def __init__(self, api_key: Optional[str], base_url: str, name: str,
                 timeout: float = 3.0, session: Optional[aiohttp.ClientSession] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.name = name
        self.timeout = timeout
        self.session = session
        self.logger = get_logger(f"{__name__}.{name}")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers={'User-Agent': USER_AGENT}
            )
        return self.session

    async def _request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Perform one HTTP call and decode the JSON body."""
        session = await self._get_session()
        try:
            async with session.request(method, url, **kwargs) as response:
                if 200 <= response.status < 300:
                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        raise AdapterError(
                            f"{self.provider_name} returned invalid JSON", APIStatus.ERROR
                        )
                    if not isinstance(data, dict):
                        raise AdapterError(
                            f"{self.provider_name} returned an unexpected response body",
                            APIStatus.ERROR
                        )
                    return data
                if response.status in (401, 403):
                    raise UnauthorizedError(
                        f"{self.provider_name} rejected the API key", response.status
                    )
                if response.status == 429:
                    retry_after = response.headers.get('Retry-After')
                    raise RateLimitError(
                        f"{self.provider_name} rate limit exceeded",
                        retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
                    )
                raise HTTPStatusError(
                    f"{self.provider_name} API error {response.status}", response.status
                )
        except asyncio.TimeoutError:
            raise RequestTimeoutError(f"{self.provider_name} request timed out")
        except aiohttp.ClientError as e:
            raise AdapterError(f"{self.provider_name} connection error: {e}", APIStatus.ERROR)

    @abstractmethod
    def select_targets(self, urls: List[str], domains: List[str]) -> List[str]:
        """Pick the resources this provider looks up."""

    @abstractmethod
    async def _check(self, targets: List[str]) -> ThreatCheckResult:
        """Query the provider for a non-empty list of targets."""

    def result(self, status: ThreatStatus, details: Optional[str] = None,
               matched_urls: Optional[List[str]] = None) -> ThreatCheckResult:
        return ThreatCheckResult(
            provider=self.provider_name,
            status=status,
            details=details,
            matched_urls=matched_urls or [],
        )

    async def check(self, urls: List[str], domains: List[str]) -> ThreatCheckResult:
        """Check URLs/domains and always return a result."""
        targets = self.select_targets(urls, domains)
        if not targets:
            return self.result(ThreatStatus.SAFE)

        if self.requires_api_key and not self.api_key:
            self.logger.warning("Provider skipped, API key not configured", provider=self.name)
            return self.result(ThreatStatus.UNKNOWN, "API key not configured")

        start_time = time.time()
        try:
            result = await self._check(targets)
        except RequestTimeoutError:
            self.logger.warning("Provider timed out", provider=self.name, timeout=self.timeout)
            return self.result(ThreatStatus.ERROR, "Request timeout")
        except AdapterError as e:
            self.logger.error("Provider check failed", provider=self.name,
                              api_status=e.status.value, error=str(e))
            return self.result(ThreatStatus.ERROR)

        self.logger.debug(
            "Provider check complete",
            provider=self.name,
            status=result.status.value,
            targets=len(targets),
            response_time=round(time.time() - start_time, 3),
        )
        return result

    async def close(self):
        """Close HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
