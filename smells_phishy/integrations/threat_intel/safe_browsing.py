"""
Google Safe Browsing API v4 adapter.

Checks URLs against Google's threat lists with a single Lookup API call.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from .base import ThreatIntelligenceAdapter, ThreatCheckResult, ThreatStatus

THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]


class SafeBrowsingClient(ThreatIntelligenceAdapter):
    """Google Safe Browsing Lookup API client."""

    provider_name = "Google Safe Browsing"

    def __init__(self, api_key: Optional[str], timeout: float = 3.0,
                 client_id: str = "smells-phishy", client_version: str = "1.0.0",
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(
            api_key=api_key,
            base_url="https://safebrowsing.googleapis.com/v4",
            name="safe_browsing",
            timeout=timeout,
            session=session,
        )
        self.client_id = client_id
        self.client_version = client_version

    def select_targets(self, urls: List[str], domains: List[str]) -> List[str]:
        return urls

    def build_request_body(self, urls: List[str]) -> Dict[str, Any]:
        return {
            "client": {
                "clientId": self.client_id,
                "clientVersion": self.client_version,
            },
            "threatInfo": {
                "threatTypes": THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url} for url in urls],
            },
        }

    async def _check(self, targets: List[str]) -> ThreatCheckResult:
        data = await self._request_json(
            "POST",
            f"{self.base_url}/threatMatches:find",
            params={"key": self.api_key},
            json=self.build_request_body(targets),
        )
        return self.normalize_response(data)

    def normalize_response(self, data: Dict[str, Any]) -> ThreatCheckResult:
        """Turn a threatMatches:find body into a result."""
        matches = data.get("matches") or []
        if not matches:
            return self.result(ThreatStatus.SAFE)

        matched_urls = [m.get("threat", {}).get("url", "") for m in matches]
        threat_types = []
        for match in matches:
            threat_type = match.get("threatType")
            if threat_type and threat_type not in threat_types:
                threat_types.append(threat_type)

        return self.result(
            ThreatStatus.MALICIOUS,
            f"Flagged as: {', '.join(threat_types)}",
            [url for url in matched_urls if url],
        )
