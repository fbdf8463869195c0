"""
Airtable Tools Exceptions.

Structured exception hierarchy for the Airtable integration. Every failure
surfaced by the request executor, the operations or the trigger inherits
from AirtableError so callers can catch the whole family at once.
"""

from __future__ import annotations

from typing import Any

import httpx


class AirtableError(Exception):
    """Base exception for all Airtable integration errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int | None:
        return self.details.get("status_code")


class AirtableParameterError(AirtableError):
    """Raised when a required parameter is missing or malformed."""
    pass


class AirtableAuthenticationError(AirtableError):
    """Raised on HTTP 401: the token was rejected."""
    pass


class AirtablePermissionError(AirtableError):
    """Raised on HTTP 403: the token lacks the required scope."""
    pass


class AirtableNotFoundError(AirtableError):
    """Raised on HTTP 404: base, table or record does not exist."""
    pass


class AirtableValidationError(AirtableError):
    """Raised on HTTP 422: Airtable rejected the request body."""
    pass


class AirtableRateLimitError(AirtableError):
    """Raised when HTTP 429 persists after every retry was spent."""
    pass


class AirtableNetworkError(AirtableError):
    """Raised when the API could not be reached at all."""
    pass


class AirtableAPIError(AirtableError):
    """Raised for any other non-2xx response."""
    pass


def _error_detail(response: httpx.Response) -> str:
    """Pull the most useful message out of an Airtable error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or ""

    if not isinstance(data, dict):
        return response.text or ""

    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message") or error.get("type") or ""
    if isinstance(error, str):
        return error
    return data.get("message", "")


def classify_response(response: httpx.Response, attempts: int = 1) -> AirtableError:
    """
    Map a failed Airtable response to the matching exception.

    Args:
        response: The last non-2xx response received.
        attempts: How many attempts were made in total.

    Returns:
        An AirtableError subclass instance (not raised).
    """
    status_code = response.status_code
    detail = _error_detail(response)
    details: dict[str, Any] = {"status_code": status_code, "attempts": attempts}
    if detail:
        details["detail"] = detail

    if status_code == 401:
        return AirtableAuthenticationError(
            "Invalid Airtable credentials. Please check your token.", details
        )
    if status_code == 403:
        return AirtablePermissionError(
            "Access forbidden. Check your token permissions.", details
        )
    if status_code == 404:
        return AirtableNotFoundError(
            "Resource not found. Check your base ID, table name, or record ID.", details
        )
    if status_code == 422:
        return AirtableValidationError(
            f"Invalid request: {detail or 'Unknown error'}", details
        )
    if status_code == 429:
        return AirtableRateLimitError(
            f"Airtable rate limit exceeded after {attempts} attempt(s). Please retry later.",
            details,
        )
    suffix = f": {detail}" if detail else ""
    return AirtableAPIError(f"Airtable API error (HTTP {status_code}){suffix}", details)


def classify_transport_error(exc: httpx.TransportError) -> AirtableNetworkError:
    """Map an httpx transport failure to AirtableNetworkError."""
    if isinstance(exc, httpx.TimeoutException):
        message = "Connection timeout. Airtable API is not responding."
        reason = "timeout"
    elif isinstance(exc, httpx.ConnectError):
        message = "Cannot connect to Airtable API. Please check your internet connection."
        reason = "connection_refused"
    else:
        message = f"Airtable request failed: {exc}"
        reason = "transport"
    return AirtableNetworkError(message, {"reason": reason})
