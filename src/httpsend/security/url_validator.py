"""Validation of request target URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from ..errors import InvalidUrlError

# Spaces and control characters are never valid inside a URL
_FORBIDDEN_CHARS = re.compile(r"[\x00-\x20\x7f]")


@dataclass
class UrlValidationResult:
    """Result of URL validation."""

    is_valid: bool
    rejection_reason: str | None = None

    @staticmethod
    def valid() -> UrlValidationResult:
        """Create a valid result."""
        return UrlValidationResult(is_valid=True)

    @staticmethod
    def invalid(reason: str) -> UrlValidationResult:
        """Create an invalid result with reason."""
        return UrlValidationResult(is_valid=False, rejection_reason=reason)


class UrlValidator:
    """
    Checks that a URL can be requested before any network I/O happens.

    Example:
        validator = UrlValidator()
        result = validator.validate("ftp://example.com/file")
        if not result.is_valid:
            print(f"Rejected: {result.rejection_reason}")
    """

    DEFAULT_ALLOWED_SCHEMES = frozenset({"http", "https"})

    def __init__(self, allowed_schemes: set[str] | frozenset[str] | None = None):
        self.allowed_schemes = allowed_schemes or self.DEFAULT_ALLOWED_SCHEMES

    def validate(self, url: str | None) -> UrlValidationResult:
        """
        Validate a URL.

        Args:
            url: The URL to validate

        Returns:
            UrlValidationResult with is_valid and optional rejection_reason
        """
        if not url or not url.strip():
            return UrlValidationResult.invalid("URL is empty")

        url = url.strip()
        if _FORBIDDEN_CHARS.search(url):
            return UrlValidationResult.invalid("URL contains whitespace or control characters")

        try:
            parsed = urlparse(url)
            # Accessing .port parses it and rejects garbage like ":abc"
            parsed.port  # noqa: B018
        except ValueError as e:
            return UrlValidationResult.invalid(f"Invalid URL format: {e}")

        scheme = parsed.scheme.lower()
        if scheme not in self.allowed_schemes:
            return UrlValidationResult.invalid(
                f"Scheme '{parsed.scheme}' not allowed (allowed: {sorted(self.allowed_schemes)})"
            )

        if not parsed.hostname:
            return UrlValidationResult.invalid("URL has no host")

        return UrlValidationResult.valid()

    def ensure_valid(self, url: str | None) -> str:
        """Return the stripped URL, or raise InvalidUrlError."""
        result = self.validate(url)
        if not result.is_valid:
            raise InvalidUrlError(f"Invalid URL {url!r}: {result.rejection_reason}")
        return url.strip()  # type: ignore[union-attr]
