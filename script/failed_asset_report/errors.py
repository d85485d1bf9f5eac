"""
Exception types and error message extraction for Failed Asset Reporting.
"""
import json
from typing import Any, Optional


class ReportError(Exception):
    """Base class for all report errors."""


class ConfigError(ReportError):
    """Invalid arguments, credentials or API key file."""


class AuthError(ReportError):
    """Token could not be minted or the token response was malformed."""


class FatalError(ReportError):
    """Error that aborts the whole run before any account is processed."""

    def __init__(self, message: str, operation: str = "setup"):
        super().__init__(message)
        self.operation = operation


class MissingScopeError(FatalError):
    """License token lacks a capability the audit calls require."""

    def __init__(self, scope: str, granted=None):
        granted_text = ', '.join(granted) if granted else 'none'
        super().__init__(
            f"Token is missing required API scope '{scope}' (granted: {granted_text})",
            operation="account listing"
        )
        self.scope = scope
        self.granted = list(granted or [])


class AccountError(ReportError):
    """Failure while processing a single account. The run continues."""

    def __init__(self, account_id: str, message: str):
        super().__init__(message)
        self.account_id = account_id


def _message_from_payload(payload: Any) -> Optional[str]:
    """Pull a human readable message out of a structured error body."""
    if not isinstance(payload, dict):
        return None

    error = payload.get('error')
    if isinstance(error, dict) and error.get('message'):
        return str(error['message'])

    for key in ('message', 'error_description', 'Message'):
        if payload.get(key):
            return str(payload[key])

    errors = payload.get('errors')
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and first.get('message'):
            return str(first['message'])
        if isinstance(first, str):
            return first

    if isinstance(error, str) and error:
        return error

    for key in ('detail', 'title'):
        if payload.get(key):
            return str(payload[key])
    return None


def _message_from_response(response) -> Optional[str]:
    if response is None:
        return None

    text = getattr(response, 'text', None)
    try:
        payload = response.json()
    except (ValueError, AttributeError, TypeError):
        payload = None
    if payload is None and isinstance(text, str):
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None

    message = _message_from_payload(payload)
    if message:
        return message
    if isinstance(text, str) and text.strip():
        return text.strip()
    return None


def extract_error_message(exc: BaseException) -> str:
    """
    Build the message recorded for a failed operation.

    A structured error payload on the HTTP response wins, then the raw
    response body, then the exception text itself. Chained causes are
    searched for a response before giving up.
    """
    current = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        message = _message_from_response(getattr(current, 'response', None))
        if message:
            return message
        current = current.__cause__

    text = str(exc)
    return text if text else exc.__class__.__name__
