"""
Airtable integration tool for MCP Server.

Provides comprehensive Airtable API functionality:
- List bases, get a base, list tables of a base
- List records (with filter/sort support)
- Create, read, update and delete records

Authentication: Personal Access Token (PAT) or legacy API key.

API Reference: https://airtable.com/developers/web/api
"""

from __future__ import annotations

import logging
from typing import Any

from fastmcp import FastMCP

from airtable_tools.config import MAX_PAGE_SIZE, RequestOptions
from airtable_tools.credentials import (
    AirtableCredentials,
    CredentialError,
    CredentialManager,
    check_connection,
)
from airtable_tools.errors import AirtableError

from . import operations
from .client import AirtableClient
from .operations import DictParameterSource, Operation

logger = logging.getLogger(__name__)


def _get_client(credentials: CredentialManager | None) -> AirtableClient:
    """
    Create an AirtableClient from credentials.

    Raises:
        CredentialError: If AIRTABLE_API_TOKEN is not configured.
    """
    manager = credentials or CredentialManager()
    options = RequestOptions()
    return AirtableClient(
        AirtableCredentials.from_manager(manager),
        retry_policy=options.retry_policy,
        timeout_ms=options.timeout,
    )


def register_tools(mcp: FastMCP, credentials: CredentialManager | None = None) -> None:
    """
    Register Airtable tools with the MCP server.

    Args:
        mcp: FastMCP server instance.
        credentials: Optional CredentialManager for token access.
    """

    async def _run(operation: Operation, **parameters: Any) -> dict[str, Any]:
        try:
            client = _get_client(credentials)
            return await operation(client, DictParameterSource(parameters), {})
        except CredentialError as e:
            logger.error(f"Failed to get Airtable credentials: {e}")
            return {"error": "Missing Airtable credentials. Set AIRTABLE_API_TOKEN environment variable."}
        except AirtableError as e:
            logger.error(f"Airtable API error: {e.message}")
            result: dict[str, Any] = {"error": e.message}
            if e.status_code is not None:
                result["status_code"] = e.status_code
            return result

    @mcp.tool(
        name="airtable_test_connection",
        description="Check that the configured Airtable token can reach the Airtable API.",
    )
    async def airtable_test_connection() -> dict[str, Any]:
        """Test the configured Airtable credentials against the meta API."""
        manager = credentials or CredentialManager()
        try:
            creds = AirtableCredentials.from_manager(manager)
        except CredentialError:
            return {"success": False, "message": "Access token or API key is required"}
        return await check_connection(
            {
                "authenticationType": creds.authentication_type,
                "accessToken": creds.access_token,
                "apiKey": creds.api_key,
            }
        )

    @mcp.tool(
        name="airtable_list_bases",
        description=(
            "List all Airtable bases accessible with the configured token. "
            "Returns base IDs and names."
        ),
    )
    async def airtable_list_bases() -> dict[str, Any]:
        """List all accessible Airtable bases."""
        return await _run(operations.list_bases)

    @mcp.tool(
        name="airtable_get_base",
        description="Get an Airtable base by ID, including the IDs and names of its tables.",
    )
    async def airtable_get_base(base_id: str) -> dict[str, Any]:
        """
        Get base information.

        Args:
            base_id: The ID of the Airtable base (e.g., 'appXXXXXXX').
        """
        return await _run(operations.get_base, base_id=base_id)

    @mcp.tool(
        name="airtable_list_tables",
        description=(
            "List all tables in an Airtable base. "
            "Returns table IDs, names and field schemas."
        ),
    )
    async def airtable_list_tables(base_id: str) -> dict[str, Any]:
        """
        List all tables in a base.

        Args:
            base_id: The ID of the Airtable base (e.g., 'appXXXXXXX').
        """
        return await _run(operations.list_tables, base_id=base_id)

    @mcp.tool(
        name="airtable_list_records",
        description=(
            "List records in an Airtable table with optional filtering and sorting. "
            "Supports Airtable formula filtering (e.g., \"{Status}='Active'\")."
        ),
    )
    async def airtable_list_records(
        base_id: str,
        table_name: str,
        filter_formula: str | None = None,
        sort_field: str | None = None,
        sort_direction: str = "asc",
        limit: int = MAX_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        List records in a table.

        Args:
            base_id: The ID of the Airtable base.
            table_name: The table name (e.g., 'Leads') or ID (e.g., 'tblXXX').
            filter_formula: Airtable formula for filtering (e.g., "{Status}='Contacted'").
            sort_field: Field name to sort by.
            sort_direction: Sort direction ('asc' or 'desc').
            limit: Maximum number of records to return (page size).
        """
        return await _run(
            operations.list_records,
            base_id=base_id,
            table_name=table_name,
            filter_formula=filter_formula,
            sort_field=sort_field,
            sort_direction=sort_direction,
            limit=limit,
        )

    @mcp.tool(
        name="airtable_get_record",
        description="Read a single Airtable record by its record ID.",
    )
    async def airtable_get_record(base_id: str, table_name: str, record_id: str) -> dict[str, Any]:
        """
        Read a record.

        Args:
            base_id: The ID of the Airtable base.
            table_name: The table name or ID.
            record_id: The record ID (e.g., 'recXXXXXX').
        """
        return await _run(
            operations.read_record,
            base_id=base_id,
            table_name=table_name,
            record_id=record_id,
        )

    @mcp.tool(
        name="airtable_create_record",
        description=(
            "Create a new record in an Airtable table. "
            "Fields are provided as a JSON object mapping field names to values."
        ),
    )
    async def airtable_create_record(base_id: str, table_name: str, fields_json: str) -> dict[str, Any]:
        """
        Create a new record in a table.

        Args:
            base_id: The ID of the Airtable base.
            table_name: The table name or ID.
            fields_json: JSON string of field name to value mappings
                (e.g., '{"Name": "John Doe", "Status": "Contacted"}').
        """
        return await _run(
            operations.create_record,
            base_id=base_id,
            table_name=table_name,
            fields=fields_json,
        )

    @mcp.tool(
        name="airtable_update_record",
        description=(
            "Update an existing record in an Airtable table by its record ID. "
            "Only the specified fields are updated; other fields remain unchanged."
        ),
    )
    async def airtable_update_record(
        base_id: str,
        table_name: str,
        record_id: str,
        fields_json: str,
    ) -> dict[str, Any]:
        """
        Update an existing record by ID.

        Args:
            base_id: The ID of the Airtable base.
            table_name: The table name or ID.
            record_id: The ID of the record to update (e.g., 'recXXXXXX').
            fields_json: JSON string of field name to value mappings to update.
        """
        return await _run(
            operations.update_record,
            base_id=base_id,
            table_name=table_name,
            record_id=record_id,
            update_fields=fields_json,
        )

    @mcp.tool(
        name="airtable_delete_record",
        description="Delete a record from an Airtable table by its record ID.",
    )
    async def airtable_delete_record(base_id: str, table_name: str, record_id: str) -> dict[str, Any]:
        """
        Delete a record.

        Args:
            base_id: The ID of the Airtable base.
            table_name: The table name or ID.
            record_id: The ID of the record to delete.
        """
        return await _run(
            operations.delete_record,
            base_id=base_id,
            table_name=table_name,
            record_id=record_id,
        )
