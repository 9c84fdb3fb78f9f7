"""
URL and domain extraction utilities for email analysis.

Pulls URLs and hostnames out of email body text so they can be checked
against threat intelligence databases.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from urllib.parse import urlparse

# http(s) URLs and bare www. hosts, stopping at whitespace, angle brackets,
# quotes, closing parens and closing brackets
URL_PATTERN = re.compile(r"""https?://[^\s<>"')\]]+|www\.[^\s<>"')\]]+""", re.IGNORECASE)

DOMAIN_PATTERN = re.compile(r"^(?:https?://)?(?:www\.)?([^/\s:]+)", re.IGNORECASE)


@dataclass
class ExtractedUrls:
    """URLs and unique domains found in a piece of text."""
    urls: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def extract_urls(text: str) -> List[str]:
    """Extract all URLs from email content, deduplicated in first-seen order."""
    matches = URL_PATTERN.findall(text)
    if not matches:
        return []

    urls = []
    for url in _unique(matches):
        if url.lower().startswith("www."):
            url = f"http://{url}"
        urls.append(url)
    return urls


def extract_domain(url: str) -> Optional[str]:
    """Extract the lowercased hostname from a URL, without a leading www."""
    match = DOMAIN_PATTERN.match(url)
    if not match:
        return None
    return match.group(1).lower()


def domains_for(urls: Iterable[str]) -> List[str]:
    """Unique domains for a list of URLs."""
    domains = (extract_domain(url) for url in urls)
    return _unique(d for d in domains if d)


def extract_domains(text: str) -> List[str]:
    """Extract all unique domains from email content."""
    return domains_for(extract_urls(text))


def extract_urls_and_domains(text: str) -> ExtractedUrls:
    """Extract both URLs and domains from email content."""
    urls = extract_urls(text)
    return ExtractedUrls(urls=urls, domains=domains_for(urls))


def merge_urls(*groups: Optional[Iterable[str]]) -> List[str]:
    """Order-preserving union of several URL lists; None groups are skipped."""
    merged: List[str] = []
    for group in groups:
        if group:
            merged.extend(group)
    return _unique(merged)


def hostname_of(url: str) -> Optional[str]:
    """Strictly parse a URL and return its hostname, or None if it has none."""
    try:
        return urlparse(url).hostname or None
    except ValueError:
        return None


__all__ = [
    "ExtractedUrls",
    "extract_urls",
    "extract_domain",
    "extract_domains",
    "extract_urls_and_domains",
    "domains_for",
    "merge_urls",
    "hostname_of",
]
