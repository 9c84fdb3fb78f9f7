"""
PhishTank adapter.

Checks URLs against the community-verified phishing database. The API takes
one URL per request, so only the first few URLs of an email are looked up.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from .base import HTTPStatusError, ThreatIntelligenceAdapter, ThreatCheckResult, ThreatStatus


class PhishTankClient(ThreatIntelligenceAdapter):
    """PhishTank checkurl API client."""

    provider_name = "PhishTank"
    # app_key only raises the anonymous rate limit
    requires_api_key = False

    def __init__(self, api_key: Optional[str] = None, timeout: float = 3.0,
                 max_lookups: int = 5, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(
            api_key=api_key,
            base_url="https://checkurl.phishtank.com",
            name="phishtank",
            timeout=timeout,
            session=session,
        )
        self.max_lookups = max_lookups

    def select_targets(self, urls: List[str], domains: List[str]) -> List[str]:
        return urls[:self.max_lookups]

    def build_form(self, url: str) -> Dict[str, str]:
        form = {"url": url, "format": "json"}
        if self.api_key:
            form["app_key"] = self.api_key
        return form

    @staticmethod
    def is_listed(data: Dict[str, Any]) -> bool:
        """A URL counts only when it is in the database and verified valid."""
        results = data.get("results") or {}
        return bool(results.get("in_database") and results.get("valid"))

    async def _check(self, targets: List[str]) -> ThreatCheckResult:
        matched_urls = []

        for url in targets:
            try:
                data = await self._request_json(
                    "POST",
                    f"{self.base_url}/checkurl/",
                    data=self.build_form(url),
                )
            except HTTPStatusError as e:
                # A rejected lookup for one URL does not fail the whole check
                self.logger.debug("PhishTank lookup skipped", status_code=e.status_code)
                continue

            if self.is_listed(data):
                matched_urls.append(url)

        if matched_urls:
            return self.result(
                ThreatStatus.MALICIOUS,
                "URL found in PhishTank database",
                matched_urls,
            )
        return self.result(ThreatStatus.SAFE)
