"""
Airtable Tools - Airtable integration for MCP agents and workflow hosts.

Exposes Airtable records, bases and tables as operations (and FastMCP
tools), plus a polling trigger that emits newly created records.
"""

__version__ = "0.1.0"

from .credentials import AirtableCredentials, CredentialError, CredentialManager
from .errors import AirtableError

__all__ = [
    "AirtableCredentials",
    "AirtableError",
    "CredentialError",
    "CredentialManager",
    "__version__",
]
