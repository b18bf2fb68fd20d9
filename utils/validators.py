# utils/validators.py - Input validation utilities
import re
from urllib.parse import urlparse, urlunparse
from typing import List


class URLValidationError(Exception):
    """Custom exception for URL validation errors."""
    pass


DOMAIN_PATTERN = r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}(:\d+)?$'
IP_PATTERN = r'^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(:\d+)?$'


def validate_url(url: str) -> str:
    """
    Validate a source URL.

    Args:
        url: The URL string to validate

    Returns:
        Stripped URL string

    Raises:
        URLValidationError: If URL is invalid
    """
    if not url or not isinstance(url, str):
        raise URLValidationError("URL is required and must be a string")

    url = url.strip()

    if not url:
        raise URLValidationError("URL cannot be empty")

    if len(url) > 2048:
        raise URLValidationError("URL exceeds maximum allowed length (2048 characters)")

    parsed = urlparse(url)

    if not parsed.scheme:
        raise URLValidationError("URL must include a scheme (http:// or https://)")

    if parsed.scheme.lower() not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme '{parsed.scheme}'. Only http and https are supported")

    if not parsed.netloc:
        raise URLValidationError("URL must include a valid domain")

    domain = parsed.netloc.lower()
    if not (re.match(DOMAIN_PATTERN, domain) or re.match(IP_PATTERN, domain)):
        raise URLValidationError(f"Invalid domain format: {domain}")

    return url


def normalize_url(url: str) -> str:
    """Normalize a URL for comparison: lowercase scheme/host, no fragment, no trailing slash."""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/")
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        parsed.query,
        "",
    ))


def parse_url_list(raw: str) -> List[str]:
    """Parse a comma-separated list of URLs into validated, normalized URLs."""
    urls = []
    for part in raw.split(","):
        if not part.strip():
            continue
        urls.append(normalize_url(validate_url(part)))
    return urls


def validate_message(message: str, max_length: int = 2000) -> str:
    """
    Validate a chat message.

    Returns:
        The stripped message

    Raises:
        ValueError: If the message is empty or too long
    """
    if not message or not isinstance(message, str):
        raise ValueError("Message is required")

    message = message.strip()

    if not message:
        raise ValueError("Message cannot be empty")

    if len(message) > max_length:
        raise ValueError(f"Message exceeds maximum length ({max_length} characters)")

    return message
