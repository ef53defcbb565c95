"""Error types surfaced by the Aidbox client.

Every failed upstream call produces exactly one ``AidboxError`` whose message is
the most specific diagnostic available.
"""

from typing import Any

import httpx

NETWORK_ERROR_MESSAGE = "Network error"


class AidboxError(RuntimeError):
    """Normalized error for any failed Aidbox operation."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AidboxAuthError(AidboxError):
    """Raised when the OAuth2 token exchange fails."""


class AidboxConnectionError(AidboxError):
    """Raised by the connectivity probe."""


def _first_text(*candidates: Any) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def _issue_diagnostics(data: dict[str, Any]) -> Any:
    issues = data.get("issue")
    if isinstance(issues, list) and issues and isinstance(issues[0], dict):
        return issues[0].get("diagnostics")
    return None


def _error_message(data: dict[str, Any]) -> Any:
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return None


def extract_error_message(response: httpx.Response) -> str:
    """Pick the most specific message from an error response.

    Order: ``issue[0].diagnostics`` (OperationOutcome), ``error.message``,
    ``message``, then the HTTP status line.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    message = None
    if isinstance(data, dict):
        message = _first_text(
            _issue_diagnostics(data),
            _error_message(data),
            data.get("message"),
        )
    return message or f"HTTP {response.status_code}: {response.reason_phrase}"


def normalize_error(exc: Exception) -> AidboxError:
    """Convert an httpx failure (or any exception) into an ``AidboxError``."""
    if isinstance(exc, AidboxError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return AidboxError(extract_error_message(exc.response), status_code=exc.response.status_code)
    return AidboxError(str(exc) or NETWORK_ERROR_MESSAGE)


__all__ = [
    "NETWORK_ERROR_MESSAGE",
    "AidboxAuthError",
    "AidboxConnectionError",
    "AidboxError",
    "extract_error_message",
    "normalize_error",
]
