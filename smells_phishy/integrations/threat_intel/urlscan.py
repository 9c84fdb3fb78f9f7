"""
urlscan.io adapter.

Searches urlscan.io for historical scans of a domain that received a
malicious verdict.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from .base import HTTPStatusError, ThreatIntelligenceAdapter, ThreatCheckResult, ThreatStatus


class UrlscanClient(ThreatIntelligenceAdapter):
    """urlscan.io Search API client."""

    provider_name = "urlscan.io"

    def __init__(self, api_key: Optional[str], timeout: float = 3.0,
                 max_lookups: int = 5, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(
            api_key=api_key,
            base_url="https://urlscan.io/api/v1",
            name="urlscan",
            timeout=timeout,
            session=session,
        )
        self.max_lookups = max_lookups

    def select_targets(self, urls: List[str], domains: List[str]) -> List[str]:
        return domains[:self.max_lookups]

    @staticmethod
    def build_query(domain: str) -> str:
        return f"domain:{domain} AND verdicts.malicious:true"

    @staticmethod
    def has_malicious_history(data: Dict[str, Any]) -> bool:
        return (data.get("total") or 0) > 0

    async def _check(self, targets: List[str]) -> ThreatCheckResult:
        matched_domains = []

        for domain in targets:
            try:
                data = await self._request_json(
                    "GET",
                    f"{self.base_url}/search/",
                    params={"q": self.build_query(domain), "size": "1"},
                    headers={"API-Key": self.api_key},
                )
            except HTTPStatusError as e:
                self.logger.debug("urlscan.io search skipped", status_code=e.status_code)
                continue

            if self.has_malicious_history(data):
                matched_domains.append(domain)

        if matched_domains:
            return self.result(
                ThreatStatus.MALICIOUS,
                "Domain has historical malicious verdicts",
                matched_domains,
            )
        return self.result(ThreatStatus.SAFE)
