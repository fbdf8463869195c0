"""
Utility functions for Airtable Tools.
"""

from .logging import configure_logging, redact_tokens
from .template import resolve_value

__all__ = [
    "configure_logging",
    "redact_tokens",
    "resolve_value",
]
