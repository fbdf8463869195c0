#!/usr/bin/env python3
"""
Airtable MCP server.

Serves the airtable_* tools over Model Context Protocol with FastMCP.

Usage:
    airtable-tools-mcp                 # streamable HTTP on MCP_PORT (4001)
    airtable-tools-mcp --port 8001
    airtable-tools-mcp --stdio         # for desktop MCP clients

A missing AIRTABLE_API_TOKEN does not stop the server: it is reported at
startup, and each tool call returns an error until the token is set (the
.env file is re-read on every call).
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from airtable_tools import __version__
from airtable_tools.credentials import CredentialManager, credential_status
from airtable_tools.tools import register_all_tools
from airtable_tools.utils.logging import configure_logging

logger = logging.getLogger(__name__)

SERVER_NAME = "airtable-tools"


async def health_check(request: Request) -> PlainTextResponse:
    """Liveness probe; does not call Airtable."""
    return PlainTextResponse("OK")


def log_credential_status(credentials: CredentialManager) -> dict:
    status = credential_status(credentials)
    if not status["token_present"]:
        logger.warning(
            "AIRTABLE_API_TOKEN is not set; Airtable tools will return an error until it is. "
            "Create a token at https://airtable.com/create/tokens"
        )
    elif not status["auth_type_valid"]:
        logger.warning(
            f"Unknown AIRTABLE_AUTH_TYPE {status['auth_type']!r}; "
            "the token will be sent without the Bearer prefix"
        )
    else:
        logger.info(f"Airtable token configured (auth type: {status['auth_type']})")
    return status


def create_server(credentials: Optional[CredentialManager] = None) -> tuple[FastMCP, list[str]]:
    """Build the FastMCP app with every Airtable tool and the /health route."""
    credentials = credentials or CredentialManager()
    log_credential_status(credentials)

    server = FastMCP(SERVER_NAME)
    tools = register_all_tools(server, credentials=credentials)
    server.custom_route("/health", methods=["GET"])(health_check)
    return server, tools


def main() -> None:
    """Entry point for the airtable-tools-mcp script."""
    parser = argparse.ArgumentParser(description="Airtable MCP server")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("MCP_PORT", "4001")),
        help="HTTP server port (default: $MCP_PORT or 4001)",
    )
    parser.add_argument("--host", default="0.0.0.0", help="HTTP server host")
    parser.add_argument("--stdio", action="store_true", help="Use STDIO transport instead of HTTP")
    args = parser.parse_args()

    # Logs always go to stderr, so this is safe under --stdio as well.
    configure_logging()
    server, tools = create_server()
    logger.info(f"airtable-tools {__version__}: {len(tools)} tools registered")

    if args.stdio:
        server.run(transport="stdio")
    else:
        logger.info(f"Starting HTTP server on {args.host}:{args.port}")
        server.run(transport="http", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
