"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs
arriving through the transport layer.

Security Considerations:
- Only http/https URLs with a host are shortened
- Short codes are restricted to the URL-safe base64 alphabet
- Length limits prevent DoS attacks
"""

import re
from typing import Optional
from urllib.parse import urlparse

from shortener.core.exceptions import InvalidURLError

MAX_URL_LENGTH = 2048
MAX_SHORT_CODE_LENGTH = 20

_SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_url(url: str) -> bool:
    """
    Validate URL format.

    Checks that the URL uses http/https and has a network location.

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > MAX_URL_LENGTH:
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if result.scheme.lower() not in {"http", "https"}:
        return False

    return bool(result.netloc)


def validate_original_url(url: str) -> str:
    """
    Return the stripped URL or raise.

    Raises:
        InvalidURLError: If the URL is not an http(s) URL with a host
    """
    url = (url or "").strip()
    if not is_valid_url(url):
        raise InvalidURLError(
            url,
            reason="Invalid URL format. URL must use http:// or https:// and have a host"
        )
    return url


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes only contain URL-safe base64 characters: [A-Za-z0-9_-]

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not _SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code
