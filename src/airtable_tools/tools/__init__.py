"""
Airtable Tools - Tool implementations for FastMCP.

Usage:
    from fastmcp import FastMCP
    from airtable_tools.tools import register_all_tools
    from airtable_tools.credentials import CredentialManager

    mcp = FastMCP("my-server")
    credentials = CredentialManager()
    register_all_tools(mcp, credentials=credentials)
"""
from typing import List, Optional, TYPE_CHECKING

from fastmcp import FastMCP

if TYPE_CHECKING:
    from airtable_tools.credentials import CredentialManager

from .airtable_tool import register_tools as register_airtable


def register_all_tools(
    mcp: FastMCP,
    credentials: Optional["CredentialManager"] = None,
) -> List[str]:
    """
    Register all tools with a FastMCP server.

    Args:
        mcp: FastMCP server instance
        credentials: Optional CredentialManager for centralized credential access.
                     If not provided, tools build a default CredentialManager
                     reading AIRTABLE_API_TOKEN from the environment or .env.

    Returns:
        List of registered tool names
    """
    register_airtable(mcp, credentials=credentials)

    return [
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
