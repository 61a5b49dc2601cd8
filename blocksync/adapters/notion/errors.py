"""Exceptions raised by the Notion sync engine.

Only programmer errors and exhausted transport failures are raised;
remote-API failures are reported through result models instead.
"""

from __future__ import annotations


class NotionClientError(Exception):
    """Base exception for Notion client errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingCredentialError(NotionClientError):
    """Raised before any request when no API key is configured."""


class UrlConstructionError(NotionClientError):
    """Raised when a base URL and path do not form a parsable URL."""


class TransportInvariantError(NotionClientError):
    """Raised when the retry loop ends with neither a response nor an error."""
