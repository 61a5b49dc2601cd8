"""Authenticated Notion API calls."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from blocksync.adapters.notion.constants import (
    API_BASE_URL,
    API_VERSION,
    CREATE_DELAY_MS,
    CREATE_RETRIES,
)
from blocksync.adapters.notion.errors import MissingCredentialError
from blocksync.adapters.notion.models import RetryPolicy
from blocksync.adapters.notion.request_builder import build_headers, build_url

if TYPE_CHECKING:
    import httpx

    from blocksync.adapters.notion.transport import RetryingTransport


DEFAULT_RETRY_POLICY = RetryPolicy(max_retries=CREATE_RETRIES, base_delay_ms=CREATE_DELAY_MS)


class RequestExecutor:
    """Combines URL/header construction, the credential check and the retrying transport.

    Headers are built per call, so a per-call ``api_key`` never leaks into
    another request sharing the same transport.
    """

    def __init__(
        self,
        transport: RetryingTransport,
        *,
        api_key: str | None = None,
        base_url: str = API_BASE_URL,
        api_version: str = API_VERSION,
        default_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        self._transport = transport
        self._api_key = api_key or None
        self._base_url = base_url
        self._api_version = api_version
        self._default_policy = default_policy

    @property
    def has_credential(self) -> bool:
        return self._api_key is not None

    def set_api_key(self, api_key: str | None) -> None:
        """Swap the default credential used by calls that do not pass their own."""
        self._api_key = api_key or None

    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Mapping[str, Any] | None = None,
        query_params: Mapping[str, Any] | None = None,
        retry_policy: RetryPolicy | None = None,
        api_key: str | None = None,
        operation_name: str | None = None,
    ) -> httpx.Response:
        """Issue one authenticated request.

        Args:
            path: Endpoint path relative to the versioned base URL
            method: HTTP method
            body: JSON body; omitted from the request entirely when None
            query_params: Query parameters; None values are dropped
            retry_policy: Overrides the executor's default policy
            api_key: Credential for this call only
            operation_name: Label used in retry logs

        Raises:
            MissingCredentialError: If neither ``api_key`` nor a default credential is set
        """
        credential = api_key or self._api_key
        if not credential:
            msg = "Notion API key is not configured"
            raise MissingCredentialError(msg)

        url = build_url(self._base_url, path, query_params)
        headers = build_headers(credential, self._api_version)
        content = None
        if body is not None:
            content = json.dumps(body, ensure_ascii=False).encode("utf-8")

        return await self._transport.execute(
            url,
            method=method,
            headers=headers,
            content=content,
            policy=retry_policy or self._default_policy,
            operation_name=operation_name or f"{method} {path}",
        )
