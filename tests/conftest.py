"""Shared fixtures for airtable_tools tests."""

import pytest

PROXY_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    """Keep httpx from mounting proxy transports ahead of MockTransport."""
    for name in PROXY_VARS:
        monkeypatch.delenv(name, raising=False)
