"""
Credential management for Airtable Tools.

Usage:
    from airtable_tools.credentials import CredentialManager, AirtableCredentials

    credentials = CredentialManager()
    creds = AirtableCredentials.from_manager(credentials)
"""

from .airtable import (
    AIRTABLE_CREDENTIALS,
    AIRTABLE_TOOLS,
    AirtableCredentials,
    CredentialSource,
    ManagerCredentialSource,
    StaticCredentialSource,
    check_connection,
    credential_status,
)
from .base import CredentialError, CredentialManager, CredentialSpec

CREDENTIAL_SPECS = {
    **AIRTABLE_CREDENTIALS,
}

__all__ = [
    "AIRTABLE_CREDENTIALS",
    "AIRTABLE_TOOLS",
    "AirtableCredentials",
    "CREDENTIAL_SPECS",
    "CredentialError",
    "CredentialManager",
    "CredentialSource",
    "CredentialSpec",
    "ManagerCredentialSource",
    "StaticCredentialSource",
    "check_connection",
    "credential_status",
]
