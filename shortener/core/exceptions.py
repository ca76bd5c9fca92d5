"""
Custom Exceptions

This module defines the exception taxonomy shared by the code generator,
the storage backends and the shortening service.

Expected, non-fatal outcomes (conflict, not found) are exceptions too so the
transport layer can map each kind to its own status code:

- ConflictError -> 409 (the body still carries the deterministic short URL)
- NotFoundError -> 404
- InvalidURLError / EmptyInputError -> 400
- everything else -> 500
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    pass


class EmptyInputError(URLShortenerException):
    """Raised when there is nothing to shorten."""

    def __init__(self, what: str = "URL"):
        self.what = what
        super().__init__(f"Empty {what}")


class InvalidURLError(URLShortenerException):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class ConflictError(URLShortenerException):
    """
    Raised when a short code already exists.

    Uniqueness is on the code alone: the existing record may be tombstoned
    or belong to another owner.
    """

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class NotFoundError(URLShortenerException):
    """Raised when a short code is not found in the store."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class StorageError(URLShortenerException):
    """Raised when a storage backend operation fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Storage error: {message}")


class BackendUnavailableError(URLShortenerException):
    """Raised when the storage backend cannot be reached."""

    def __init__(self, backend: str, original_error: Optional[Exception] = None):
        self.backend = backend
        self.original_error = original_error
        message = f"Backend '{backend}' is unavailable"
        if original_error is not None:
            message = f"{message}: {original_error}"
        super().__init__(message)


class StreamClosedError(URLShortenerException):
    """Raised when a value is put on a deletion stream after it was closed."""
    pass
