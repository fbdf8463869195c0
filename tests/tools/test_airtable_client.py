"""
Unit tests for the Airtable request executor and client.

Tests cover:
- Authorization header construction
- Retry with exponential backoff on HTTP 429 only
- Error classification of terminal failures
- URL and payload construction per endpoint
"""

import json

import httpx
import pytest

from airtable_tools.config import RequestSpec, RetryPolicy
from airtable_tools.credentials import AirtableCredentials
from airtable_tools.errors import (
    AirtableAPIError,
    AirtableAuthenticationError,
    AirtableNetworkError,
    AirtableNotFoundError,
    AirtablePermissionError,
    AirtableRateLimitError,
    AirtableValidationError,
)
from airtable_tools.tools.airtable_tool.client import AirtableClient, execute_request

PAT = AirtableCredentials(authentication_type="pat", access_token="patTest123")
URL = "https://api.airtable.com/v0/appTestBase123/Leads"


class Recorder:
    """MockTransport handler replaying canned responses and recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def rate_limited():
    return httpx.Response(429, json={"errors": [{"error": "RATE_LIMIT_REACHED"}]})


async def run(recorder, policy=None, spec=None, credentials=PAT, sleep=None):
    return await execute_request(
        spec or RequestSpec(url=URL, method="GET", timeout_ms=30000),
        credentials,
        policy or RetryPolicy(max_retries=3, base_delay_ms=1000),
        transport=httpx.MockTransport(recorder),
        sleep=sleep or RecordingSleep(),
    )


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_pat_sends_bearer_token(self):
        recorder = Recorder(httpx.Response(200, json={"records": []}))

        await run(recorder)

        headers = recorder.requests[0].headers
        assert headers["Authorization"] == "Bearer patTest123"
        assert headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_legacy_api_key_is_sent_unprefixed(self):
        recorder = Recorder(httpx.Response(200, json={}))
        creds = AirtableCredentials(authentication_type="apiKey", api_key="keyLegacy")

        await run(recorder, credentials=creds)

        assert recorder.requests[0].headers["Authorization"] == "keyLegacy"

    @pytest.mark.asyncio
    async def test_pat_falls_back_to_api_key_field(self):
        recorder = Recorder(httpx.Response(200, json={}))
        creds = AirtableCredentials(authentication_type="pat", api_key="keyOnly")

        await run(recorder, credentials=creds)

        assert recorder.requests[0].headers["Authorization"] == "Bearer keyOnly"


class TestRetry:
    @pytest.mark.asyncio
    async def test_success_returns_body_without_retry(self):
        recorder = Recorder(httpx.Response(200, json={"records": [{"id": "rec1"}]}))
        sleep = RecordingSleep()

        result = await run(recorder, sleep=sleep)

        assert result == {"records": [{"id": "rec1"}]}
        assert len(recorder.requests) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_retries", [0, 1, 2, 3])
    async def test_rate_limit_exhausts_all_attempts(self, max_retries):
        recorder = Recorder(*[rate_limited() for _ in range(max_retries + 1)])
        sleep = RecordingSleep()

        with pytest.raises(AirtableRateLimitError) as exc_info:
            await run(recorder, policy=RetryPolicy(max_retries=max_retries, base_delay_ms=1000), sleep=sleep)

        assert len(recorder.requests) == max_retries + 1
        assert sleep.delays == [2**i for i in range(max_retries)]
        assert exc_info.value.status_code == 429
        assert exc_info.value.details["attempts"] == max_retries + 1

    @pytest.mark.asyncio
    async def test_success_after_rate_limit_stops_retrying(self):
        recorder = Recorder(
            rate_limited(),
            rate_limited(),
            httpx.Response(200, json={"id": "rec1"}),
        )
        sleep = RecordingSleep()

        result = await run(recorder, policy=RetryPolicy(max_retries=5, base_delay_ms=100), sleep=sleep)

        assert result == {"id": "rec1"}
        assert len(recorder.requests) == 3
        assert sleep.delays == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        recorder = Recorder(httpx.Response(404, json={"error": "NOT_FOUND"}))
        sleep = RecordingSleep()

        with pytest.raises(AirtableNotFoundError) as exc_info:
            await run(recorder, sleep=sleep)

        assert len(recorder.requests) == 1
        assert sleep.delays == []
        assert "Resource not found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_only_last_error_is_surfaced(self):
        recorder = Recorder(rate_limited(), httpx.Response(422, json={
            "error": {"type": "INVALID_VALUE_FOR_COLUMN", "message": "Field 'Age' cannot accept 'abc'"}
        }))

        with pytest.raises(AirtableValidationError) as exc_info:
            await run(recorder)

        assert exc_info.value.message == "Invalid request: Field 'Age' cannot accept 'abc'"
        assert exc_info.value.details["attempts"] == 2


class TestClassification:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_cls, message",
        [
            (401, AirtableAuthenticationError, "Invalid Airtable credentials"),
            (403, AirtablePermissionError, "Access forbidden"),
            (404, AirtableNotFoundError, "Resource not found"),
            (422, AirtableValidationError, "Invalid request: Unknown error"),
            (500, AirtableAPIError, "Airtable API error (HTTP 500)"),
        ],
    )
    async def test_status_maps_to_error(self, status, error_cls, message):
        recorder = Recorder(httpx.Response(status, json={}))

        with pytest.raises(error_cls) as exc_info:
            await run(recorder)

        assert message in exc_info.value.message
        assert exc_info.value.status_code == status
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_connection_refused_is_terminal(self):
        recorder = Recorder(httpx.ConnectError("Connection refused"))
        sleep = RecordingSleep()

        with pytest.raises(AirtableNetworkError) as exc_info:
            await run(recorder, sleep=sleep)

        assert "Cannot connect to Airtable API" in exc_info.value.message
        assert exc_info.value.details["reason"] == "connection_refused"
        assert len(recorder.requests) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_timeout_is_terminal(self):
        recorder = Recorder(httpx.ReadTimeout("timed out"))

        with pytest.raises(AirtableNetworkError) as exc_info:
            await run(recorder)

        assert "Connection timeout" in exc_info.value.message
        assert exc_info.value.details["reason"] == "timeout"

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_api_error(self):
        recorder = Recorder(httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(AirtableAPIError) as exc_info:
            await run(recorder)

        assert "not valid JSON" in exc_info.value.message
        assert exc_info.value.details == {"status_code": 200, "attempts": 1}
        assert len(recorder.requests) == 1


class TestAirtableClient:
    def setup_method(self):
        self.base_id = "appTestBase123"
        self.record_id = "recTestRecord789"
        self.sleep = RecordingSleep()

    def _client(self, *responses):
        self.recorder = Recorder(*responses)
        return AirtableClient(
            PAT,
            retry_policy=RetryPolicy(max_retries=1, base_delay_ms=10),
            transport=httpx.MockTransport(self.recorder),
            sleep=self.sleep,
        )

    @pytest.mark.asyncio
    async def test_list_records_query_parameters(self):
        client = self._client(httpx.Response(200, json={"records": []}))

        await client.list_records(
            self.base_id,
            "My Leads",
            filter_formula="{Status}='New'",
            sort_field="Name",
            sort_direction="desc",
            page_size=25,
        )

        request = self.recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == f"/v0/{self.base_id}/My Leads"
        assert request.url.params["pageSize"] == "25"
        assert request.url.params["filterByFormula"] == "{Status}='New'"
        assert request.url.params["sort[0][field]"] == "Name"
        assert request.url.params["sort[0][direction]"] == "desc"

    @pytest.mark.asyncio
    async def test_list_records_without_options(self):
        client = self._client(httpx.Response(200, json={"records": []}))

        await client.list_records(self.base_id, "Leads")

        params = self.recorder.requests[0].url.params
        assert params["pageSize"] == "100"
        assert "filterByFormula" not in params
        assert "sort[0][field]" not in params

    @pytest.mark.asyncio
    async def test_create_record_payload(self):
        client = self._client(httpx.Response(200, json={"records": [{"id": "rec1"}]}))

        await client.create_record(self.base_id, "Leads", {"Name": "A"})

        request = self.recorder.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"records": [{"fields": {"Name": "A"}}]}

    @pytest.mark.asyncio
    async def test_update_record_payload(self):
        client = self._client(httpx.Response(200, json={"records": [{"id": self.record_id}]}))

        await client.update_record(self.base_id, "Leads", self.record_id, {"Status": "Done"})

        request = self.recorder.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == f"/v0/{self.base_id}/Leads"
        assert json.loads(request.content) == {
            "records": [{"id": self.record_id, "fields": {"Status": "Done"}}]
        }

    @pytest.mark.asyncio
    async def test_delete_record_url(self):
        client = self._client(httpx.Response(200, json={"id": self.record_id, "deleted": True}))

        result = await client.delete_record(self.base_id, "Leads", self.record_id)

        request = self.recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == f"/v0/{self.base_id}/Leads/{self.record_id}"
        assert result["deleted"] is True

    @pytest.mark.asyncio
    async def test_meta_endpoints(self):
        client = self._client(
            httpx.Response(200, json={"bases": []}),
            httpx.Response(200, json={"id": self.base_id}),
            httpx.Response(200, json={"tables": []}),
        )

        await client.list_bases()
        await client.get_base(self.base_id)
        await client.list_tables(self.base_id)

        paths = [r.url.path for r in self.recorder.requests]
        assert paths == [
            "/v0/meta/bases",
            f"/v0/meta/bases/{self.base_id}",
            f"/v0/meta/bases/{self.base_id}/tables",
        ]

    @pytest.mark.asyncio
    async def test_empty_success_body_decodes_to_dict(self):
        client = self._client(httpx.Response(204))

        result = await client.delete_record(self.base_id, "Leads", self.record_id)

        assert result == {}
