"""Redaction helpers for anything that leaves the sync engine.

Upstream error text can carry tokens, page titles or request URLs. Results
returned to callers and log records only ever see the fixed category
messages produced here.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

# Ordered: the first matching category wins.
_ERROR_CATEGORIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("unauthorized", "invalid token", "invalid api key", "authentication", "api key"),
        "The API key is invalid or expired. Check the integration settings.",
    ),
    (
        ("forbidden", "permission denied", "access denied", "restricted_resource"),
        "Insufficient permissions. Share the target page with the integration.",
    ),
    (
        ("rate limit", "rate_limited", "too many requests"),
        "Too many requests. Wait a moment and try again.",
    ),
    (
        ("not found", "object_not_found", "does not exist"),
        "The requested resource was not found. It may have been deleted.",
    ),
    (
        ("conflict", "unsaved transactions"),
        "The page is being edited elsewhere. Try again shortly.",
    ),
    (
        ("validation", "invalid image", "media upload", "body failed"),
        "The content did not match the expected format.",
    ),
    (
        ("network", "fetch failed", "timeout", "timed out", "enotfound", "connect"),
        "Network connection failed. Check connectivity and retry.",
    ),
    (
        (
            "service unavailable",
            "service_unavailable",
            "internal error",
            "internal_server_error",
            "bad gateway",
        ),
        "The remote service is temporarily unavailable. Try again later.",
    ),
)

_GENERIC_MESSAGE = "The operation failed"

_TOKEN_PATTERN = re.compile(r"\b(secret_|ntn_|Bearer\s+)[A-Za-z0-9_\-.]+", re.IGNORECASE)


def _error_text(error: object) -> str:
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


def sanitize_api_error(error: object, context: str = "operation") -> str:
    """Map a raw error to a safe, user-displayable message.

    Args:
        error: Exception, string or object with a ``message`` attribute
        context: Short operation tag (e.g. ``append_blocks``) used for the
            fallback message

    Returns:
        One of the fixed category messages, or a generic message naming
        ``context``. Upstream text is never echoed back.
    """
    text = _error_text(error).lower()
    for keywords, safe_message in _ERROR_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return safe_message
    return f"{_GENERIC_MESSAGE} ({context})"


def redact_tokens(text: str) -> str:
    """Replace anything that looks like a bearer token or integration secret."""
    return _TOKEN_PATTERN.sub(lambda m: f"{m.group(1)}***", text)


def sanitize_url_for_logging(url: str | None) -> str:
    """Strip userinfo, query string and fragment from a URL before it is logged."""
    if not url:
        return "[empty]"
    try:
        parts = urlsplit(url)
    except ValueError:
        return "[invalid-url]"
    if not parts.scheme or not parts.netloc:
        return "[invalid-url]"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


def mask_sensitive_string(value: str | None, visible_start: int = 4, visible_end: int = 4) -> str:
    """Mask the middle of a credential, keeping a short prefix and suffix."""
    if not value:
        return "[empty]"
    if len(value) <= visible_start + visible_end:
        return "***"
    return f"{value[:visible_start]}***{value[-visible_end:]}"


__all__ = [
    "mask_sensitive_string",
    "redact_tokens",
    "sanitize_api_error",
    "sanitize_url_for_logging",
]
