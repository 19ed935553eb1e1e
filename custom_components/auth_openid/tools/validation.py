"""Validation and sanitization helpers for user supplied identities."""

from __future__ import annotations

from urllib.parse import urlparse


def validate_url(url: str) -> bool:
    """Validate that a URL is properly formatted."""
    try:
        parsed = urlparse(url.strip())
        return bool(parsed.scheme in ("http", "https") and parsed.netloc)
    except (ValueError, TypeError, AttributeError):
        return False


def sanitize_identity(identity: str | None) -> str:
    """Sanitize an OpenID identity typed in by the user.

    Identities without a scheme, like example.com/alice, are accepted and
    normalized by discovery, so only whitespace is stripped here.
    """
    return identity.strip() if isinstance(identity, str) else ""


def validate_identity(identity: str) -> bool:
    """Validate an OpenID identity (URL or XRI)."""
    if not identity or any(char.isspace() for char in identity):
        return False

    # XRI i-names like =alice or @example
    if identity[0] in "=@+$!(":
        return True

    if "://" in identity:
        return validate_url(identity)

    return validate_url(f"http://{identity}")


def validate_code(code: object, length: int) -> bool:
    """Validate a one time login code, only digits of the given length."""
    return isinstance(code, str) and len(code) == length and code.isdigit()
