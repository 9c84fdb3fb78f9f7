from .sanitizer import SanitizationResult, sanitize, sanitize_email_content
from .url_extractor import (
    ExtractedUrls,
    extract_urls,
    extract_domain,
    extract_domains,
    extract_urls_and_domains,
    domains_for,
    merge_urls,
    hostname_of,
)

__all__ = [
    "SanitizationResult",
    "sanitize",
    "sanitize_email_content",
    "ExtractedUrls",
    "extract_urls",
    "extract_domain",
    "extract_domains",
    "extract_urls_and_domains",
    "domains_for",
    "merge_urls",
    "hostname_of",
]
