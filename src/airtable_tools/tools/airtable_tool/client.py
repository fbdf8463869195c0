"""
Airtable Web API client.

Every call goes through execute_request(), which handles authentication,
timeouts and exponential backoff on HTTP 429. Any other failure is
terminal and raised as a classified AirtableError.

API Reference: https://airtable.com/developers/web/api
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from airtable_tools.config import (
    AIRTABLE_BASE_URL,
    AIRTABLE_META_URL,
    DEFAULT_TIMEOUT_MS,
    MAX_PAGE_SIZE,
    RequestSpec,
    RetryPolicy,
)
from airtable_tools.errors import AirtableAPIError, classify_response, classify_transport_error

if TYPE_CHECKING:
    from airtable_tools.credentials import AirtableCredentials

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def execute_request(
    spec: RequestSpec,
    credentials: AirtableCredentials,
    policy: RetryPolicy,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """
    Issue one Airtable API call, retrying only on HTTP 429.

    Args:
        spec: URL, method, optional JSON body and timeout.
        credentials: Token and authentication type.
        policy: Retry budget and base backoff delay for rate limiting.
        transport: Optional httpx transport (tests inject MockTransport).
        sleep: Awaitable sleep used for backoff, in seconds.

    Returns:
        The decoded JSON body of the first 2xx response.

    Raises:
        AirtableError: Classified failure of the last attempt.
    """
    headers = {
        "Authorization": credentials.authorization_header,
        "Content-Type": "application/json",
    }
    request_kwargs: dict[str, Any] = {"headers": headers}
    if spec.body is not None:
        request_kwargs["json"] = spec.body

    async with httpx.AsyncClient(timeout=spec.timeout_seconds, transport=transport) as client:
        for attempt in range(policy.max_retries + 1):
            try:
                response = await client.request(spec.method, spec.url, **request_kwargs)
            except httpx.TransportError as e:
                logger.error(f"Airtable request failed: {spec.method} {spec.url}: {e!r}")
                raise classify_transport_error(e) from e

            if response.is_success:
                if not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError as e:
                    logger.error(f"Airtable returned a non-JSON body: {spec.method} {spec.url}")
                    raise AirtableAPIError(
                        f"Airtable API error (HTTP {response.status_code}): response is not valid JSON",
                        {"status_code": response.status_code, "attempts": attempt + 1},
                    ) from e

            if response.status_code == 429 and attempt < policy.max_retries:
                wait_ms = policy.delay_ms(attempt)
                logger.warning(f"Rate limited. Retrying in {wait_ms}ms...")
                await sleep(wait_ms / 1000)
                continue

            break

    logger.error(f"Airtable API error: {response.status_code} on {spec.method} {spec.url}")
    raise classify_response(response, attempts=attempt + 1)


def record_url(base_id: str, table_name: str, record_id: str | None = None) -> str:
    """URL of a table, or of a single record when record_id is given."""
    url = f"{AIRTABLE_BASE_URL}/{base_id}/{quote(table_name, safe='')}"
    if record_id:
        url = f"{url}/{record_id}"
    return url


class AirtableClient:
    """
    Airtable API client.

    Binds credentials, retry policy and timeout, and provides one method per
    Airtable endpoint. Methods return the raw Airtable JSON.
    """

    def __init__(
        self,
        credentials: AirtableCredentials,
        retry_policy: RetryPolicy | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the Airtable client.

        Args:
            credentials: Resolved Airtable credentials.
            retry_policy: Backoff policy for HTTP 429 (defaults to RetryPolicy()).
            timeout_ms: Request timeout in milliseconds.
            transport: Optional httpx transport override.
            sleep: Awaitable sleep used between retries.
        """
        self._credentials = credentials
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_ms = timeout_ms
        self._transport = transport
        self._sleep = sleep

    async def execute(self, method: str, url: str, body: Any = None) -> Any:
        spec = RequestSpec(url=url, method=method, body=body, timeout_ms=self._timeout_ms)
        return await execute_request(
            spec,
            self._credentials,
            self._retry_policy,
            transport=self._transport,
            sleep=self._sleep,
        )

    async def list_records(
        self,
        base_id: str,
        table_name: str,
        filter_formula: str | None = None,
        sort_field: str | None = None,
        sort_direction: str = "asc",
        page_size: int = MAX_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        List records in a table (a single page).

        Args:
            base_id: The ID of the base.
            table_name: The table name or ID.
            filter_formula: Airtable formula for filtering records.
            sort_field: Field to sort by.
            sort_direction: 'asc' or 'desc'.
            page_size: Number of records requested.
        """
        params: dict[str, Any] = {"pageSize": page_size}
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if sort_field:
            params["sort[0][field]"] = sort_field
            params["sort[0][direction]"] = sort_direction

        url = str(httpx.URL(record_url(base_id, table_name), params=params))
        return await self.execute("GET", url)

    async def get_record(self, base_id: str, table_name: str, record_id: str) -> dict[str, Any]:
        return await self.execute("GET", record_url(base_id, table_name, record_id))

    async def create_record(
        self, base_id: str, table_name: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        payload = {"records": [{"fields": fields}]}
        return await self.execute("POST", record_url(base_id, table_name), payload)

    async def update_record(
        self, base_id: str, table_name: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        payload = {"records": [{"id": record_id, "fields": fields}]}
        return await self.execute("PATCH", record_url(base_id, table_name), payload)

    async def delete_record(self, base_id: str, table_name: str, record_id: str) -> dict[str, Any]:
        return await self.execute("DELETE", record_url(base_id, table_name, record_id))

    async def list_bases(self) -> dict[str, Any]:
        return await self.execute("GET", f"{AIRTABLE_META_URL}/bases")

    async def get_base(self, base_id: str) -> dict[str, Any]:
        return await self.execute("GET", f"{AIRTABLE_META_URL}/bases/{base_id}")

    async def list_tables(self, base_id: str) -> dict[str, Any]:
        return await self.execute("GET", f"{AIRTABLE_META_URL}/bases/{base_id}/tables")
