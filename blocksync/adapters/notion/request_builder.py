"""URL and header construction for Notion API requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from blocksync.adapters.notion.errors import UrlConstructionError
from blocksync.core.security import sanitize_url_for_logging

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(
    base_url: str,
    path: str,
    query_params: Mapping[str, Any] | None = None,
) -> str:
    """Build a fully-qualified URL against a versioned base.

    The base and path are joined as plain strings before parsing, so the
    base's own path prefix (``/v1``) survives a path written as ``/pages``.
    Query parameters whose value is None are dropped.

    Raises:
        TypeError: If ``path`` is not a string
        UrlConstructionError: If the joined string is not an absolute http(s) URL
    """
    if not isinstance(path, str):
        msg = f"path must be a string, got {type(path).__name__}"
        raise TypeError(msg)

    normalized_base = str(base_url).rstrip("/")
    normalized_path = "/" + path.lstrip("/")
    raw = f"{normalized_base}{normalized_path}"

    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        logger.error(
            "notion_url_construction_failed",
            extra={
                "base_url": sanitize_url_for_logging(normalized_base),
                "path": normalized_path,
                "error": type(exc).__name__,
            },
        )
        msg = "Failed to construct request URL"
        raise UrlConstructionError(msg, details={"path": normalized_path}) from exc

    if url.scheme not in ("http", "https") or not url.host:
        logger.error(
            "notion_url_construction_failed",
            extra={
                "base_url": sanitize_url_for_logging(normalized_base),
                "path": normalized_path,
                "error": "not_absolute",
            },
        )
        msg = "Failed to construct request URL"
        raise UrlConstructionError(msg, details={"path": normalized_path})

    params = {
        key: _stringify(value) for key, value in (query_params or {}).items() if value is not None
    }
    if params:
        url = url.copy_merge_params(params)
    return str(url)


def build_headers(api_key: str, api_version: str) -> dict[str, str]:
    """Headers sent on every Notion request."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Notion-Version": api_version,
    }
