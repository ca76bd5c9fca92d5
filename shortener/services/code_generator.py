"""
Short Code Generation

Codes are content-addressed: SHA-256 of the original URL, encoded with the
URL-safe base64 alphabet and truncated to CODE_LENGTH characters.

Why content-addressed?
- Identical URLs always get the identical code, so retries are idempotent
- A second add of the same URL collides on the same code; the storage layer
  reports that as a conflict and the caller still knows the right code
- No database round trip or counter is needed to mint a code
"""

import base64
import hashlib

from shortener.core.exceptions import EmptyInputError

CODE_LENGTH = 8
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def generate_code(original_url: str, length: int = CODE_LENGTH) -> str:
    """
    Derive the short code for a URL.

    Args:
        original_url: The long URL to shorten
        length: Number of characters to keep (default: 8)

    Returns:
        URL-safe short code of exactly ``length`` characters

    Raises:
        EmptyInputError: If original_url is empty

    Example:
        generate_code("https://example.com") -> same 8 chars on every call
    """
    if not original_url:
        raise EmptyInputError("URL")

    digest = hashlib.sha256(original_url.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")[:length]
