"""
Airtable credentials.

Supports authentication via:
- Personal Access Token (PAT), sent as a bearer token
- API Key (Legacy), sent unprefixed
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from .base import CredentialError, CredentialManager, CredentialSpec

logger = logging.getLogger(__name__)

AIRTABLE_TOOLS = [
    "airtable_test_connection",
    "airtable_list_bases",
    "airtable_get_base",
    "airtable_list_tables",
    "airtable_list_records",
    "airtable_get_record",
    "airtable_create_record",
    "airtable_update_record",
    "airtable_delete_record",
]

AIRTABLE_CREDENTIALS = {
    "airtable": CredentialSpec(
        env_var="AIRTABLE_API_TOKEN",
        tools=AIRTABLE_TOOLS,
        required=True,
        help_url="https://airtable.com/create/tokens",
        description="Airtable Personal Access Token (or legacy API key)",
    ),
    "airtable_auth_type": CredentialSpec(
        env_var="AIRTABLE_AUTH_TYPE",
        required=False,
        default="pat",
        description="Authentication type: 'pat' (default) or 'apiKey' (legacy)",
    ),
}

AuthenticationType = Literal["pat", "apiKey"]


@dataclass(frozen=True)
class AirtableCredentials:
    """Resolved Airtable credentials for the duration of one request."""

    authentication_type: AuthenticationType = "pat"
    access_token: Optional[str] = None
    api_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.access_token and not self.api_key:
            raise CredentialError("Airtable credentials are required. Please configure Airtable credentials.")

    @property
    def token(self) -> str:
        # Either field may be populated whatever the declared type.
        return self.access_token or self.api_key or ""

    @property
    def authorization_header(self) -> str:
        if self.authentication_type == "pat":
            return f"Bearer {self.token}"
        return self.token

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "AirtableCredentials":
        """
        Build credentials from a host credential record.

        Accepts both camelCase keys (authenticationType, accessToken, apiKey)
        and snake_case keys.
        """
        if not data:
            raise CredentialError("Airtable credentials are required. Please configure Airtable credentials.")
        return cls(
            authentication_type=data.get("authenticationType")
            or data.get("authentication_type")
            or "pat",
            access_token=data.get("accessToken") or data.get("access_token"),
            api_key=data.get("apiKey") or data.get("api_key"),
        )

    @classmethod
    def from_manager(cls, manager: CredentialManager) -> "AirtableCredentials":
        """Build credentials from AIRTABLE_API_TOKEN / AIRTABLE_AUTH_TYPE."""
        manager.validate_for_tools(["airtable_list_bases"])
        auth_type = manager.get("airtable_auth_type") or "pat"
        token = manager.get("airtable")
        if auth_type == "pat":
            return cls(authentication_type="pat", access_token=token)
        return cls(authentication_type="apiKey", api_key=token)


def credential_status(manager: CredentialManager) -> dict[str, Any]:
    """
    Startup summary of the configured Airtable credentials.

    The token itself is never included. An unknown auth type is reported so
    the server can warn before the first tool call sends an unprefixed token.
    """
    auth_type = manager.get("airtable_auth_type") or "pat"
    return {
        "auth_type": auth_type,
        "token_present": manager.is_available("airtable"),
        "auth_type_valid": auth_type in ("pat", "apiKey"),
    }


class CredentialSource(Protocol):
    """Host capability that resolves a named credential record."""

    async def get_credentials(self, name: str) -> Optional[Mapping[str, Any]]:
        ...


class StaticCredentialSource:
    """CredentialSource serving fixed credential records by name."""

    def __init__(self, records: Mapping[str, Mapping[str, Any]]):
        self._records = dict(records)

    async def get_credentials(self, name: str) -> Optional[Mapping[str, Any]]:
        return self._records.get(name)


class ManagerCredentialSource:
    """CredentialSource backed by a CredentialManager (env vars / .env)."""

    def __init__(self, manager: Optional[CredentialManager] = None):
        self._manager = manager or CredentialManager()

    async def get_credentials(self, name: str) -> Optional[Mapping[str, Any]]:
        if name != "airtable" or not self._manager.is_available("airtable"):
            return None
        creds = AirtableCredentials.from_manager(self._manager)
        return {
            "authenticationType": creds.authentication_type,
            "accessToken": creds.access_token,
            "apiKey": creds.api_key,
        }


async def check_connection(data: Optional[Mapping[str, Any]], transport=None) -> dict[str, Any]:
    """
    Test an Airtable credential record against GET /meta/bases.

    Returns:
        {"success": bool, "message": str}; never raises.
    """
    from airtable_tools.config import AIRTABLE_META_URL, RequestSpec, RetryPolicy
    from airtable_tools.errors import (
        AirtableAuthenticationError,
        AirtableError,
        AirtableNetworkError,
        AirtablePermissionError,
    )
    from airtable_tools.tools.airtable_tool.client import execute_request

    try:
        credentials = AirtableCredentials.from_mapping(data)
    except CredentialError:
        return {"success": False, "message": "Access token or API key is required"}

    spec = RequestSpec(url=f"{AIRTABLE_META_URL}/bases", method="GET", timeout_ms=5000)
    try:
        await execute_request(
            spec,
            credentials,
            RetryPolicy(max_retries=0),
            transport=transport,
        )
    except AirtableAuthenticationError:
        return {"success": False, "message": "Invalid token. Please check your Airtable credentials."}
    except AirtablePermissionError:
        return {"success": False, "message": "Access forbidden. Check your token permissions."}
    except AirtableNetworkError as e:
        return {"success": False, "message": e.message}
    except AirtableError as e:
        logger.warning("Airtable connection test failed: %s", e.message)
        return {"success": False, "message": f"Connection failed: {e.message}"}

    return {"success": True, "message": "Connected successfully to Airtable"}
