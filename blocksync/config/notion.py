from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from blocksync.adapters.notion import constants
from blocksync.adapters.notion.models import RetryPolicy


class NotionConfig(BaseModel):
    """Notion API access, rate-limit and retry configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(default="", validation_alias="NOTION_API_KEY")
    api_url: str = Field(default=constants.API_BASE_URL, validation_alias="NOTION_API_URL")
    api_version: str = Field(default=constants.API_VERSION, validation_alias="NOTION_API_VERSION")
    blocks_per_batch: int = Field(
        default=constants.MAX_BLOCKS_PER_WRITE, validation_alias="NOTION_BLOCKS_PER_BATCH"
    )
    page_size: int = Field(default=constants.MAX_PAGE_SIZE, validation_alias="NOTION_PAGE_SIZE")
    rate_limit_delay_ms: int = Field(
        default=constants.RATE_LIMIT_DELAY_MS, validation_alias="NOTION_RATE_LIMIT_DELAY_MS"
    )
    delete_concurrency: int = Field(
        default=constants.DELETE_CONCURRENCY, validation_alias="NOTION_DELETE_CONCURRENCY"
    )
    delete_batch_delay_ms: int = Field(
        default=constants.DELETE_BATCH_DELAY_MS, validation_alias="NOTION_DELETE_BATCH_DELAY_MS"
    )
    highlight_section_header: str = Field(
        default=constants.HIGHLIGHT_SECTION_HEADER,
        validation_alias="NOTION_HIGHLIGHT_SECTION_HEADER",
    )
    request_timeout_sec: float = Field(default=30.0, validation_alias="NOTION_REQUEST_TIMEOUT_SEC")

    check_retries: int = Field(
        default=constants.CHECK_RETRIES, validation_alias="NOTION_CHECK_RETRIES"
    )
    check_delay_ms: int = Field(
        default=constants.CHECK_DELAY_MS, validation_alias="NOTION_CHECK_DELAY_MS"
    )
    create_retries: int = Field(
        default=constants.CREATE_RETRIES, validation_alias="NOTION_CREATE_RETRIES"
    )
    create_delay_ms: int = Field(
        default=constants.CREATE_DELAY_MS, validation_alias="NOTION_CREATE_DELAY_MS"
    )
    delete_retries: int = Field(
        default=constants.DELETE_RETRIES, validation_alias="NOTION_DELETE_RETRIES"
    )
    delete_delay_ms: int = Field(
        default=constants.DELETE_DELAY_MS, validation_alias="NOTION_DELETE_DELAY_MS"
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def _validate_api_key(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        key = str(value).strip()
        if len(key) > 500:
            msg = "Notion API key appears to be too long"
            raise ValueError(msg)
        if any(char in key for char in (" ", "\n", "\t")):
            msg = "Notion API key contains invalid characters"
            raise ValueError(msg)
        return key

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or constants.API_BASE_URL).strip()
        if not url.startswith(("http://", "https://")):
            msg = "Notion API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("api_version", "highlight_section_header", mode="before")
    @classmethod
    def _validate_non_empty(cls, value: Any, info: ValidationInfo) -> str:
        if value in (None, ""):
            return str(cls.model_fields[info.field_name].default)
        return str(value).strip()

    @field_validator("blocks_per_batch", "page_size", mode="before")
    @classmethod
    def _validate_api_limit(cls, value: Any, info: ValidationInfo) -> int:
        parsed = cls._parse_int(value, info)
        if parsed < 1 or parsed > 100:
            msg = f"{info.field_name.replace('_', ' ')} must be between 1 and 100"
            raise ValueError(msg)
        return parsed

    @field_validator("delete_concurrency", mode="before")
    @classmethod
    def _validate_concurrency(cls, value: Any, info: ValidationInfo) -> int:
        parsed = cls._parse_int(value, info)
        if parsed < 1 or parsed > 10:
            msg = "delete concurrency must be between 1 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator(
        "rate_limit_delay_ms",
        "delete_batch_delay_ms",
        "check_retries",
        "create_retries",
        "delete_retries",
        mode="before",
    )
    @classmethod
    def _validate_non_negative(cls, value: Any, info: ValidationInfo) -> int:
        parsed = cls._parse_int(value, info)
        if parsed < 0:
            msg = f"{info.field_name.replace('_', ' ')} must be non-negative"
            raise ValueError(msg)
        return parsed

    @field_validator("check_delay_ms", "create_delay_ms", "delete_delay_ms", mode="before")
    @classmethod
    def _validate_positive(cls, value: Any, info: ValidationInfo) -> int:
        parsed = cls._parse_int(value, info)
        if parsed <= 0:
            msg = f"{info.field_name.replace('_', ' ')} must be positive"
            raise ValueError(msg)
        return parsed

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 30.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "request timeout must be a number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 300:
            msg = "request timeout must be between 0 and 300 seconds"
            raise ValueError(msg)
        return parsed

    @classmethod
    def _parse_int(cls, value: Any, info: ValidationInfo) -> int:
        if value in (None, ""):
            return int(cls.model_fields[info.field_name].default)
        try:
            return int(str(value))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc

    @property
    def check_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.check_retries, base_delay_ms=self.check_delay_ms)

    @property
    def create_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.create_retries, base_delay_ms=self.create_delay_ms)

    @property
    def delete_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.delete_retries, base_delay_ms=self.delete_delay_ms)
