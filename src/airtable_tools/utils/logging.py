"""
Logging setup for airtable_tools.

Modules log through ``logging.getLogger(__name__)``; configure_logging()
attaches one stderr handler to the ``airtable_tools`` logger so STDIO
JSON-RPC on stdout stays clean. The handler masks Airtable tokens, since
httpx exceptions and request reprs can carry Authorization values.

Environment:
    AIRTABLE_TOOLS_LOG_LEVEL   DEBUG / INFO / WARNING / ... (default INFO)
    AIRTABLE_TOOLS_LOG_FORMAT  logging format string
"""

from __future__ import annotations

import logging
import os
import re

PACKAGE_LOGGER = "airtable_tools"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# PATs look like patXXXXXXXXXXXXXX.<64 hex>; legacy keys like keyXXXXXXXXXXXXXX.
_TOKEN_PATTERN = re.compile(r"\b(pat[A-Za-z0-9]{14}\.[A-Za-z0-9]+|key[A-Za-z0-9]{14})\b")
_BEARER_PATTERN = re.compile(r"(Bearer\s+)\S+")


def redact_tokens(text: str) -> str:
    """Replace anything that looks like an Airtable token with its prefix plus '***'."""
    text = _BEARER_PATTERN.sub(r"\1***", text)
    return _TOKEN_PATTERN.sub(lambda m: m.group(1)[:3] + "***", text)


class TokenRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(level: str | None = None, fmt: str | None = None) -> logging.Logger:
    """
    Attach the stderr handler to the package logger and return it.

    Calling it again only updates the level; the handler is never duplicated.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    resolved_level = (level or os.getenv("AIRTABLE_TOOLS_LOG_LEVEL", "INFO")).upper()
    if resolved_level not in logging.getLevelNamesMapping():
        resolved_level = "INFO"
    package_logger.setLevel(resolved_level)

    if any(isinstance(f, TokenRedactingFilter) for h in package_logger.handlers for f in h.filters):
        return package_logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt or os.getenv("AIRTABLE_TOOLS_LOG_FORMAT", DEFAULT_FORMAT)))
    handler.addFilter(TokenRedactingFilter())
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return package_logger
