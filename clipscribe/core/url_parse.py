"""
Media URL validation and source classification.
Pure string inspection: no network access.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from clipscribe.core.constants import (
    SourceType, SOURCE_HOST_PATTERNS, BLOCKED_SOURCE_TYPES,
    ALLOWED_URL_SCHEMES, BLOCKED_PLATFORM_MESSAGE,
)
from clipscribe.core.error_codes import InvalidInput, BlockedPlatform


@dataclass(frozen=True)
class SourceClassification:
    source_type: str
    is_valid: bool
    is_blocked: bool


def _host(url: str) -> str:
    try:
        return (urlparse(url.strip()).hostname or "").lower()
    except ValueError:
        return ""


def is_valid_url(url: str) -> bool:
    """True iff `url` is an absolute http(s) URL with a host."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        return parsed.scheme.lower() in ALLOWED_URL_SCHEMES and bool(parsed.hostname)
    except ValueError:
        return False


def detect_source_type(url: str) -> str:
    """Map a URL's host to a coarse platform category."""
    host = _host(url)
    if not host:
        return SourceType.OTHER
    for needle, source_type in SOURCE_HOST_PATTERNS:
        if needle in host:
            return source_type
    return SourceType.OTHER


def is_blocked_platform(url: str) -> bool:
    return detect_source_type(url) in BLOCKED_SOURCE_TYPES


def classify(url: str) -> SourceClassification:
    source_type = detect_source_type(url)
    return SourceClassification(
        source_type=source_type,
        is_valid=is_valid_url(url),
        is_blocked=source_type in BLOCKED_SOURCE_TYPES,
    )


def validate_media_url(url: str) -> SourceClassification:
    """
    Classify a URL submitted for transcription.
    Raises InvalidInput or BlockedPlatform; callers must not create a job
    record when either is raised.
    """
    if not url or not isinstance(url, str):
        raise InvalidInput("URL is required")

    classification = classify(url)
    if not classification.is_valid:
        raise InvalidInput("Invalid URL format")
    if classification.is_blocked:
        raise BlockedPlatform(BLOCKED_PLATFORM_MESSAGE)
    return classification
