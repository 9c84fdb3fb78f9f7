"""
Email content sanitizer.

Strips inline base64 images and long encoded blobs from pasted email content
before it is scanned for links or handed to the AI classifier. Those payloads
carry no useful signal and only inflate the prompt.
"""

import re
from dataclasses import dataclass

IMAGE_PLACEHOLDER = "[IMAGE REMOVED]"
ENCODED_PLACEHOLDER = "[ENCODED CONTENT REMOVED]"

BASE64_IMAGE_PATTERN = re.compile(r"data:image/[a-zA-Z]+;base64,[a-zA-Z0-9+/=]+", re.IGNORECASE)
ENCODED_BLOB_PATTERN = re.compile(r"[a-zA-Z0-9+/=]{500,}")


@dataclass
class SanitizationResult:
    """Result of sanitization with counts of what was removed."""
    sanitized_content: str
    original_length: int
    sanitized_length: int
    images_removed: int = 0
    encoded_blobs_removed: int = 0

    @property
    def modified(self) -> bool:
        return bool(self.images_removed or self.encoded_blobs_removed)


def sanitize(text: str) -> SanitizationResult:
    """Remove base64 images, then long encoded runs, then trim."""
    without_images, images_removed = BASE64_IMAGE_PATTERN.subn(IMAGE_PLACEHOLDER, text)
    without_blobs, blobs_removed = ENCODED_BLOB_PATTERN.subn(ENCODED_PLACEHOLDER, without_images)
    cleaned = without_blobs.strip()

    return SanitizationResult(
        sanitized_content=cleaned,
        original_length=len(text),
        sanitized_length=len(cleaned),
        images_removed=images_removed,
        encoded_blobs_removed=blobs_removed,
    )


def sanitize_email_content(text: str) -> str:
    """Sanitize email content and return only the cleaned text."""
    return sanitize(text).sanitized_content


__all__ = [
    "SanitizationResult",
    "sanitize",
    "sanitize_email_content",
    "IMAGE_PLACEHOLDER",
    "ENCODED_PLACEHOLDER",
]
