"""
Configuration models for the Airtable integration.

Defaults can be overridden from the environment:

    AIRTABLE_TIMEOUT_MS      request timeout in milliseconds (default 30000)
    AIRTABLE_MAX_RETRIES     retries on HTTP 429 (default 3)
    AIRTABLE_RETRY_DELAY_MS  initial backoff delay in milliseconds (default 1000)
    AIRTABLE_POLL_INTERVAL   trigger polling interval in seconds (default 60)
"""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

AIRTABLE_BASE_URL = "https://api.airtable.com/v0"
AIRTABLE_META_URL = "https://api.airtable.com/v0/meta"

MIN_POLL_INTERVAL_MS = 30_000
MAX_PAGE_SIZE = 100


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


DEFAULT_TIMEOUT_MS = _env_int("AIRTABLE_TIMEOUT_MS", 30_000)
DEFAULT_MAX_RETRIES = _env_int("AIRTABLE_MAX_RETRIES", 3)
DEFAULT_RETRY_DELAY_MS = _env_int("AIRTABLE_RETRY_DELAY_MS", 1_000)
DEFAULT_POLL_INTERVAL = _env_int("AIRTABLE_POLL_INTERVAL", 60)


class RetryPolicy(BaseModel):
    """Backoff policy applied to rate-limited (HTTP 429) responses only."""

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    base_delay_ms: int = Field(default=DEFAULT_RETRY_DELAY_MS, gt=0)

    def delay_ms(self, attempt: int) -> int:
        """Backoff before the retry that follows attempt `attempt` (0-indexed)."""
        return self.base_delay_ms * 2**attempt


class RequestSpec(BaseModel):
    """A single Airtable HTTP call."""

    url: str
    method: Literal["GET", "POST", "PATCH", "DELETE"] = "GET"
    body: Any = None
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class RequestOptions(BaseModel):
    """Per-node request options (the "Options" collection of the node)."""

    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_delay: int = Field(default=DEFAULT_RETRY_DELAY_MS, gt=0)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, base_delay_ms=self.retry_delay)


class TriggerConfig(BaseModel):
    """Configuration of one polling trigger."""

    base_id: str
    table_name: str
    polling_interval: float = Field(default=DEFAULT_POLL_INTERVAL, allow_inf_nan=False)
    filter_formula: str = ""
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_delay: int = Field(default=DEFAULT_RETRY_DELAY_MS, gt=0)

    @field_validator("base_id", "table_name")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @property
    def interval_ms(self) -> int:
        """Effective polling interval, never below 30 seconds."""
        return max(int(self.polling_interval * 1000), MIN_POLL_INTERVAL_MS)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, base_delay_ms=self.retry_delay)
