"""
Smoke tests for the MCP server module.
"""

from unittest.mock import MagicMock, patch

import pytest

from airtable_tools.credentials import AIRTABLE_TOOLS, CredentialManager
from airtable_tools.mcp_server import create_server, health_check, log_credential_status


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("AIRTABLE_API_TOKEN", raising=False)
    monkeypatch.delenv("AIRTABLE_AUTH_TYPE", raising=False)


def manager(tmp_path, **values):
    return CredentialManager.for_testing(values, dotenv_path=tmp_path / ".env")


class TestCreateServer:
    def test_registers_every_airtable_tool(self, tmp_path):
        server, tools = create_server(manager(tmp_path, airtable="patTest123"))

        assert server.name == "airtable-tools"
        assert sorted(tools) == sorted(AIRTABLE_TOOLS)

    def test_starts_without_token(self, tmp_path):
        server, tools = create_server(manager(tmp_path))

        assert len(tools) == len(AIRTABLE_TOOLS)

    @pytest.mark.asyncio
    async def test_health_check(self):
        response = await health_check(MagicMock())

        assert response.status_code == 200
        assert response.body == b"OK"


class TestCredentialStatus:
    def test_missing_token_is_warned(self, tmp_path):
        with patch("airtable_tools.mcp_server.logger") as mock_logger:
            status = log_credential_status(manager(tmp_path))

        assert status == {"auth_type": "pat", "token_present": False, "auth_type_valid": True}
        assert "AIRTABLE_API_TOKEN is not set" in mock_logger.warning.call_args.args[0]

    def test_unknown_auth_type_is_warned(self, tmp_path):
        with patch("airtable_tools.mcp_server.logger") as mock_logger:
            status = log_credential_status(
                manager(tmp_path, airtable="patTest123", airtable_auth_type="oauth")
            )

        assert status["auth_type_valid"] is False
        assert "'oauth'" in mock_logger.warning.call_args.args[0]

    def test_configured_token_is_not_logged(self, tmp_path):
        with patch("airtable_tools.mcp_server.logger") as mock_logger:
            log_credential_status(manager(tmp_path, airtable="keyLegacy12345678", airtable_auth_type="apiKey"))

        message = mock_logger.info.call_args.args[0]
        assert "apiKey" in message
        assert "keyLegacy12345678" not in message
        mock_logger.warning.assert_not_called()
