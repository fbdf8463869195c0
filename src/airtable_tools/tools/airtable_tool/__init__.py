"""
Airtable tool module for Airtable Tools MCP Server.

Provides tools for interacting with Airtable:
- List bases, get a base, list tables
- List, read, create, update and delete records

Usage:
    from airtable_tools.tools.airtable_tool import register_tools

    register_tools(mcp, credentials=credentials)
"""

from .airtable import register_tools
from .client import AirtableClient, execute_request
from .operations import AirtableNode, DictParameterSource, ParameterSource

__all__ = [
    "AirtableClient",
    "AirtableNode",
    "DictParameterSource",
    "ParameterSource",
    "execute_request",
    "register_tools",
]
